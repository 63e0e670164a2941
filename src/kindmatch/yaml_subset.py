"""
Reader for the small YAML subset used by platform capability files.

Supported: 2-space indentation, `key: value` mappings, `- ` list items
(scalars or mappings), whole-line and trailing `#` comments, quoted
strings, booleans, decimal and hex integers, and `[a, b]` inline lists.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from kindmatch.errors import ConfigError


_RE_INT = re.compile(r"^-?\d+$")
_RE_HEX = re.compile(r"^0x[0-9a-fA-F]+$")

Container = Union[Dict[str, Any], List[Any]]


def _strip_comment_line(line: str) -> str:
    line = line.rstrip("\r\n")
    quote = None
    for i, ch in enumerate(line):
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in ("'", '"') and (i == 0 or line[i - 1] in " \t[,"):
            quote = ch
        elif ch == "#" and (i == 0 or line[i - 1] in " \t"):
            return line[:i].rstrip()
    return line


def _indent_of(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def parse_scalar(text: str) -> Any:
    s = text.strip()
    if s == "":
        return ""
    if len(s) >= 2 and s[0] == s[-1] and s[0] in ("'", '"'):
        return s[1:-1]
    lower = s.lower()
    if lower == "true":
        return True
    if lower == "false":
        return False
    if s.startswith("[") and s.endswith("]"):
        inner = s[1:-1].strip()
        if inner == "":
            return []
        return [parse_scalar(p) for p in inner.split(",") if p.strip() != ""]
    if _RE_HEX.match(s):
        return int(s, 16)
    if _RE_INT.match(s):
        return int(s, 10)
    return s


def _split_key_value(line: str, *, where: str) -> Tuple[str, Optional[str]]:
    if ":" not in line:
        raise ConfigError(f"{where}: invalid mapping line (missing ':'): {line!r}")
    key, rest = line.split(":", 1)
    key = key.strip()
    if key == "":
        raise ConfigError(f"{where}: invalid mapping line (empty key): {line!r}")
    rest = rest.strip()
    return key, rest if rest != "" else None


def _next_significant_line(lines: Sequence[str], start_index: int) -> Optional[str]:
    for i in range(start_index, len(lines)):
        cleaned = _strip_comment_line(lines[i])
        if cleaned.strip() != "":
            return cleaned
    return None


def parse_yaml_subset(text: str, *, source: str = "<string>") -> Dict[str, Any]:
    lines = text.splitlines()
    root: Dict[str, Any] = {}
    stack: List[Tuple[int, Container]] = [(0, root)]

    def current_container(indent: int, where: str) -> Container:
        while stack and stack[-1][0] > indent:
            stack.pop()
        if not stack or stack[-1][0] != indent:
            raise ConfigError(f"{where}: bad indentation at indent={indent}")
        return stack[-1][1]

    def open_block(indent: int, index: int, what: str) -> Container:
        where = f"{source}:{index + 1}"
        next_line = _next_significant_line(lines, index + 1)
        if next_line is None:
            raise ConfigError(f"{where}: {what} missing nested block at end of file")
        if _indent_of(next_line) <= indent:
            raise ConfigError(f"{where}: {what} missing nested block")
        block: Container = [] if next_line.strip().startswith("-") else {}
        stack.append((indent + 2, block))
        return block

    for index, raw in enumerate(lines):
        cleaned = _strip_comment_line(raw)
        if cleaned.strip() == "":
            continue
        where = f"{source}:{index + 1}"
        indent = _indent_of(cleaned)
        if indent % 2 != 0:
            raise ConfigError(f"{where}: indentation must be multiple of 2 spaces")

        content = cleaned.strip()
        container = current_container(indent, where)

        if content == "-" or content.startswith("- "):
            if not isinstance(container, list):
                raise ConfigError(f"{where}: list item in non-list context")
            item_text = content[1:].strip()
            if item_text == "":
                container.append(open_block(indent, index, "'-'"))
            elif ":" in item_text and not item_text.startswith(("'", '"', "[")):
                key, rest = _split_key_value(item_text, where=where)
                item: Dict[str, Any] = {key: parse_scalar(rest) if rest is not None else None}
                container.append(item)
                stack.append((indent + 2, item))
            else:
                container.append(parse_scalar(item_text))
            continue

        if not isinstance(container, dict):
            raise ConfigError(f"{where}: mapping entry in non-dict context")
        key, rest = _split_key_value(content, where=where)
        if key in container:
            raise ConfigError(f"{where}: duplicate key {key!r}")
        if rest is None:
            container[key] = open_block(indent, index, f"key {key!r}")
        else:
            container[key] = parse_scalar(rest)

    return root


def load_yaml_subset(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"{path.as_posix()}: cannot read: {exc.strerror}") from exc
    return parse_yaml_subset(text, source=path.as_posix())
