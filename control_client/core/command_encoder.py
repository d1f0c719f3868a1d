"""
Framing of command text into the payload of a queued-command event, and
decoding of the result event's data back into output lines.
"""
import re
from typing import List, Optional

TIMEOUT_DIRECTIVE = "#timeout="
POWERSHELL_DIRECTIVE = "#!ps"

# An already-escaped pair is matched first so it is left untouched.
_ESCAPE_PATTERN = re.compile(r'\\\\|\\"|\\|"')
_LINE_BREAK_PATTERN = re.compile(r'\r\n|\n|\r')

_CONTROL_ESCAPES = {
    '\n': '\\n',
    '\r': '\\r',
    '\t': '\\t',
    '\b': '\\b',
    '\f': '\\f',
}


def _escape_match(match: 're.Match') -> str:
    token = match.group(0)
    if token == '\\':
        return '\\\\'
    if token == '"':
        return '\\"'
    return token


def escape_command(command: str) -> str:
    """
    Escapes backslashes and double quotes that are not already escaped.

    Applying it twice gives the same result as applying it once. A ``\\\\``
    pair already in the text counts as one escaped backslash, so a raw UNC
    path ``\\\\server\\share`` reaches the agent as ``\\server\\share``; pass
    ``\\\\\\\\server\\share`` to keep the leading double backslash.
    """
    return _ESCAPE_PATTERN.sub(_escape_match, command)


def encode(raw_command: str, timeout_ms: int, use_powershell: bool = False) -> str:
    """
    Produces the payload for a queued-command event.

    The result is ``#timeout=<timeout_ms>``, then ``#!ps`` when PowerShell
    framing is requested, then the escaped command, one per line.

    :param raw_command: Command text as the user typed it.
    :type raw_command: str
    :param timeout_ms: Execution window granted to the remote agent, in milliseconds.
    :type timeout_ms: int
    :param use_powershell: Run under PowerShell instead of the default interpreter.
    :type use_powershell: bool
    :return: The framed payload, with real newlines between directive lines.
    :rtype: str
    :raises ValueError: If ``timeout_ms`` is not a positive integer.
    """
    if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int) or timeout_ms <= 0:
        raise ValueError(f"timeout_ms must be a positive integer, got {timeout_ms!r}")

    framed = escape_command(raw_command)
    if use_powershell:
        framed = f"{POWERSHELL_DIRECTIVE}\n{framed}"
    return f"{TIMEOUT_DIRECTIVE}{timeout_ms}\n{framed}"


def to_json_string_literal(payload: str) -> str:
    """
    Quotes an already-escaped payload for textual embedding in a JSON body.

    Backslashes and quotes were handled by :func:`escape_command`; only control
    characters are escaped here.
    """
    parts = []
    for char in payload:
        if char in _CONTROL_ESCAPES:
            parts.append(_CONTROL_ESCAPES[char])
        elif ord(char) < 0x20:
            parts.append(f"\\u{ord(char):04x}")
        else:
            parts.append(char)
    return '"' + ''.join(parts) + '"'


def decode_output(data: Optional[str]) -> List[str]:
    """
    Turns a result event's data into output lines.

    Empty lines are discarded and the first remaining line, the echoed
    command, is dropped. Single-line data therefore yields no output.
    Lines holding only whitespace are real output and are kept.
    """
    if not data:
        return []
    lines = [line for line in _LINE_BREAK_PATTERN.split(data) if line]
    return lines[1:]
