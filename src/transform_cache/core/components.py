from pathlib import PurePath

_COMPONENT_EXTENSIONS = (".tsx", ".jsx")

# Placeholder module for UI components in a non-rendering test context: every property
# access returns the property's own name.
COMPONENT_STUB = """module.exports = new Proxy({}, {
    get: (obj, prop) => prop
  });"""


def is_component_import(file_path: str) -> bool:
    """Whether a file is a UI component entry rather than a test or spec file."""
    name = PurePath(file_path).name
    for ext in _COMPONENT_EXTENSIONS:
        if name.endswith(ext):
            stem = name[: -len(ext)]
            return not (stem.endswith("spec") or stem.endswith("test"))
    return False
