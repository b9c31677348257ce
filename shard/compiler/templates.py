from __future__ import annotations

from string import Template
from typing import Iterable

# Fragments run as the body of Go(); the statement terminator sits on its own
# line so a trailing line comment in the fragment cannot swallow it.
CHUNK_TEMPLATE = Template("""${uses}
class Chunk : CodeChunk {
    public override void Go(VariableEnvironment V) {
${body}
;
    }
}
""")

FUNCTION_TEMPLATE = Template("""${uses}
public class ${class_name} : FunctionContext {
    public ${body}
}
""")

CHUNK_CLASS = "Chunk"
ENTRY_METHOD = "Go"


def render_uses(namespaces: Iterable[str]) -> str:
    return "".join(f"using {ns};\n" for ns in namespaces)


def render_chunk(body: str, namespaces: Iterable[str]) -> str:
    return CHUNK_TEMPLATE.substitute(uses=render_uses(namespaces), body=body)


def render_function(body: str, class_name: str, namespaces: Iterable[str]) -> str:
    return FUNCTION_TEMPLATE.substitute(uses=render_uses(namespaces), body=body, class_name=class_name)
