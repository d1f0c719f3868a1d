import json

import pytest

from control_client.core.command_encoder import decode_output, encode, escape_command, to_json_string_literal


def test_encode_plain_command_starts_with_timeout_directive():
    assert encode("hostname", 10000) == "#timeout=10000\nhostname"


def test_encode_powershell_framing_sits_below_timeout_directive():
    assert encode("Get-Process", 5000, use_powershell=True) == "#timeout=5000\n#!ps\nGet-Process"


def test_escape_backslash_and_quote_once():
    raw = 'dir "C:\\Program Files"'
    escaped = escape_command(raw)
    assert escaped == 'dir \\"C:\\\\Program Files\\"'
    assert escape_command(escaped) == escaped


def test_already_escaped_sequences_are_left_alone():
    assert escape_command('echo \\"hi\\"') == 'echo \\"hi\\"'
    assert escape_command('C:\\\\Windows') == 'C:\\\\Windows'


@pytest.mark.parametrize("timeout_ms", [0, -1, 1.5, "100", True])
def test_encode_rejects_invalid_timeout(timeout_ms):
    with pytest.raises(ValueError):
        encode("hostname", timeout_ms)


def test_encode_is_deterministic():
    assert encode('echo "x"', 1000, True) == encode('echo "x"', 1000, True)


def test_json_literal_survives_json_parsing():
    payload = encode('echo "a\\b"\tdone', 10000)
    decoded = json.loads(to_json_string_literal(payload))
    assert decoded == '#timeout=10000\necho "a\\b"\tdone'


def test_json_literal_escapes_other_control_characters():
    assert to_json_string_literal("a\x01b") == '"a\\u0001b"'


def test_decode_output_drops_echoed_command_and_blank_lines():
    assert decode_output("hostname\r\nDESKTOP-01") == ["DESKTOP-01"]
    assert decode_output("ipconfig\r\n\r\nline one\n\nline two\r\n") == ["line one", "line two"]


def test_decode_output_single_line_yields_nothing():
    assert decode_output("hostname") == []
    assert decode_output("") == []
    assert decode_output(None) == []


def test_existing_double_backslash_is_one_escaped_backslash():
    unc = '\\\\server\\share'
    escaped = escape_command(unc)
    assert escaped == '\\\\server\\\\share'
    assert json.loads(to_json_string_literal(escaped)) == '\\server\\share'
    assert json.loads(to_json_string_literal(escape_command('\\\\\\\\server\\share'))) == unc


def test_decode_output_keeps_whitespace_only_lines():
    assert decode_output("dir\r\n  \r\nfile.txt") == ["  ", "file.txt"]
