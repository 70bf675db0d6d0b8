"""
FrontMatter - Parses the metadata header of index and page files.

Two header styles are accepted. Line based:

    +++
    title = "Summer 2024"
    hidden = true
    data.statistics = "$builtin"
    +++

and YAML:

    ---
    title: Summer 2024
    data:
      statistics: $builtin
    ---

The ``+++`` block is read line by line (``key = value`` or ``key: value``,
dotted keys build maps). Unknown keys are ignored. Everything after the
closing marker is the body, which is kept as raw text.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml

from .errors import FrontMatterError

INDEX_FILENAMES = ('_index.revela', '_index.md')

TOML_MARKER = '+++'
YAML_MARKER = '---'

# "data = x" with a single value is shorthand for this source name
DEFAULT_DATA_SOURCE = 'statistics'

_LINE_PATTERN = re.compile(r'^([A-Za-z_][\w.\-]*)\s*[=:]\s*(.*)$')
_INT_PATTERN = re.compile(r'^[+-]?\d+$')
_FLOAT_PATTERN = re.compile(r'^[+-]?\d+\.\d*$')


@dataclass
class FrontMatter:
    """
    Metadata overrides read from a front-matter header.

    All fields are None/empty when the header does not set them.
    """
    title: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    hidden: bool = False
    template: Optional[str] = None
    sort: Optional[str] = None
    data_sources: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None


def parse_front_matter(text: str) -> FrontMatter:
    """
    Parse file content into FrontMatter.

    Content without a header is treated entirely as body.

    Raises:
        FrontMatterError: If the header is unterminated or malformed
    """
    if not text or not text.strip():
        return FrontMatter()

    stripped = text.lstrip('\ufeff').lstrip()
    first_line = stripped.split('\n', 1)[0].strip()

    if first_line not in (TOML_MARKER, YAML_MARKER):
        return FrontMatter(body=text)

    marker = first_line
    lines = stripped.split('\n')
    closing = None
    for index in range(1, len(lines)):
        if lines[index].strip() == marker:
            closing = index
            break
    if closing is None:
        raise FrontMatterError(f"Missing closing '{marker}' marker")

    header = '\n'.join(lines[1:closing])
    body = '\n'.join(lines[closing + 1:]).lstrip('\r\n')

    if marker == TOML_MARKER:
        values = _parse_key_values(header)
    else:
        values = _parse_yaml(header)

    return _build(values, body if body.strip() else None)


def parse_front_matter_file(path: str) -> FrontMatter:
    """Read and parse a file; see parse_front_matter."""
    with open(path, 'r', encoding='utf-8') as f:
        return parse_front_matter(f.read())


def _parse_yaml(header: str) -> Dict[str, Any]:
    try:
        values = yaml.safe_load(header)
    except yaml.YAMLError as e:
        raise FrontMatterError(f"Invalid YAML front matter: {e}") from e
    if values is None:
        return {}
    if not isinstance(values, dict):
        raise FrontMatterError("YAML front matter must be a mapping")
    return values


def _parse_key_values(header: str) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for line_number, raw_line in enumerate(header.split('\n'), start=2):
        line = raw_line.strip()
        if not line or line.startswith('#'):
            continue

        match = _LINE_PATTERN.match(line)
        if not match:
            raise FrontMatterError(f"Line {line_number}: cannot parse '{line}'")

        key, raw_value = match.group(1), match.group(2)
        value = _parse_value(raw_value, line_number)

        # data.statistics = "x" -> {"data": {"statistics": "x"}}
        target = values
        parts = key.split('.')
        for part in parts[:-1]:
            existing = target.get(part)
            if not isinstance(existing, dict):
                existing = {}
                target[part] = existing
            target = existing
        target[parts[-1]] = value
    return values


def _parse_value(raw: str, line_number: int) -> Any:
    value = raw.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        inner = value[1:-1]
        if value[0] == '"':
            inner = inner.replace('\\"', '"').replace('\\n', '\n').replace('\\\\', '\\')
        return inner
    if value[:1] in ('"', "'"):
        raise FrontMatterError(f"Line {line_number}: unterminated string")

    lowered = value.lower()
    if lowered == 'true':
        return True
    if lowered == 'false':
        return False
    if _INT_PATTERN.match(value):
        return int(value)
    if _FLOAT_PATTERN.match(value):
        return float(value)
    return value


def _string(values: Dict[str, Any], key: str) -> Optional[str]:
    value = values.get(key)
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _bool(values: Dict[str, Any], key: str) -> bool:
    value = values.get(key)
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == 'true'
    return False


def _data_sources(values: Dict[str, Any]) -> Dict[str, str]:
    data = values.get('data')
    if isinstance(data, dict):
        return {
            str(name): str(source)
            for name, source in data.items()
            if source is not None and str(source).strip()
        }
    if isinstance(data, str) and data.strip():
        return {DEFAULT_DATA_SOURCE: data.strip()}
    return {}


def _build(values: Dict[str, Any], body: Optional[str]) -> FrontMatter:
    return FrontMatter(
        title=_string(values, 'title'),
        slug=_string(values, 'slug'),
        description=_string(values, 'description'),
        hidden=_bool(values, 'hidden'),
        template=_string(values, 'template'),
        sort=_string(values, 'sort'),
        data_sources=_data_sources(values),
        body=body,
    )
