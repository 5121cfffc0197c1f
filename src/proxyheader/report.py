"""HTML rendering of a header chain."""

from enum import Enum

from jinja2 import Environment

from .core.model import HeaderChain

_TEMPLATE = """\
<!DOCTYPE html>
<html>
	<head>
		<meta charset="UTF-8">
		<title>PROXY Protocol Debugger</title>
	</head>
	<body>
		{% if chain|length > 0 %}
		<table border="1">
			<tr>
				<th>Version</th>
				<th>AddrType</th>
				<th>SrcAddr</th>
				<th>DstAddr</th>
				<th>Transport Protocol (v2)</th>
				<th>Command (v2)</th>
			</tr>
			{% for h in chain %}
			<tr>
				<td>{{ h.version }}</td>
				<td>{{ h.address_family|text }}</td>
				<td>{{ h.source_address }}:{{ h.source_port }}</td>
				<td>{{ h.destination_address }}:{{ h.destination_port }}</td>
				<td>{{ h.transport_protocol|text }}</td>
				<td>{{ h.command|text }}</td>
			</tr>
			{% endfor %}
		</table>
		{% else %}
		<p>No PROXY protocol header</p>
		{% endif %}
	</body>
</html>
"""


def _text(value) -> str:
    if value is None:
        return ""
    return value.value if isinstance(value, Enum) else str(value)


_env = Environment(autoescape=True)
_env.filters["text"] = _text
_template = _env.from_string(_TEMPLATE)


def render_html(chain: HeaderChain) -> str:
    """Render the chain as the debugger page, rows in arrival order."""
    return _template.render(chain=chain)
