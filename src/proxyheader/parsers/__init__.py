"""Wire-format parsers for proxyheader."""

from .v1 import V1Parser
from .v2 import V2Parser
