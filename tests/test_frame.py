import pytest

from miniredis.errors import MiniRedisError
from miniredis.frame import (
    Array,
    Bulk,
    ErrorFrame,
    Incomplete,
    Integer,
    Null,
    ProtocolError,
    Simple,
    check,
    parse,
)

GET_HELLO = b"*2\r\n$3\r\nGET\r\n$5\r\nhello\r\n"
SET_EX = b"*5\r\n$3\r\nSET\r\n$5\r\nhello\r\n$5\r\nworld\r\n+EX\r\n:1\r\n"
SUBSCRIBED = b"*3\r\n$9\r\nsubscribe\r\n$5\r\nhello\r\n:1\r\n"


def test_parse_get_command():
    frame, pos = parse(GET_HELLO)
    assert frame == Array([Bulk(b"GET"), Bulk(b"hello")])
    assert pos == len(GET_HELLO)


def test_parse_set_with_expiry():
    frame, _ = parse(SET_EX)
    assert frame == Array(
        [Bulk(b"SET"), Bulk(b"hello"), Bulk(b"world"), Simple("EX"), Integer(1)]
    )


@pytest.mark.parametrize("wire", [GET_HELLO, SET_EX, SUBSCRIBED, b"$-1\r\n", b"+OK\r\n"])
def test_check_consumes_whole_frame(wire):
    assert check(wire) == len(wire)
    assert check(wire + b"+OK\r\n") == len(wire)


@pytest.mark.parametrize("wire", [GET_HELLO, SET_EX, SUBSCRIBED, b"$-1\r\n", b":0\r\n"])
def test_every_prefix_is_incomplete(wire):
    for cut in range(len(wire)):
        with pytest.raises(Incomplete):
            check(wire[:cut])


def test_parse_null_and_simple():
    assert parse(b"$-1\r\n") == (Null(), 5)
    assert parse(b"+OK\r\n") == (Simple("OK"), 5)


def test_parse_error_frame():
    wire = b"-ERR unknown command 'foo'\r\n"
    frame, pos = parse(wire)
    assert frame == ErrorFrame("ERR unknown command 'foo'")
    assert pos == len(wire)


def test_parse_from_offset():
    wire = b"+OK\r\n" + GET_HELLO
    frame, pos = parse(wire, 5)
    assert frame == Array([Bulk(b"GET"), Bulk(b"hello")])
    assert pos == len(wire)


def test_invalid_type_byte():
    with pytest.raises(ProtocolError, match="invalid frame type byte"):
        check(b"?foo\r\n")


def test_invalid_decimal():
    with pytest.raises(ProtocolError, match="invalid frame format"):
        check(b":abc\r\n")


def test_invalid_null_line():
    with pytest.raises(ProtocolError, match="invalid frame format"):
        parse(b"$-2\r\n")


def test_invalid_utf8_simple():
    with pytest.raises(ProtocolError):
        parse(b"+\xff\r\n")


def test_incomplete_message():
    assert str(Incomplete()) == "stream ended early"


def test_display():
    assert str(Null()) == "(nil)"
    assert str(ErrorFrame("boom")) == "error: boom"
    assert str(Integer(42)) == "42"
    assert str(Array([Bulk(b"message"), Bulk(b"hello"), Bulk(b"world")])) == "message hello world"


def test_display_non_utf8_bulk():
    assert str(Bulk(b"\xff")) == 'b"\\xff"'


def test_to_error():
    err = Null().to_error()
    assert isinstance(err, MiniRedisError)
    assert str(err) == "unexpected frame: (nil)"


def test_matches():
    assert Simple("subscribe").matches("subscribe")
    assert Bulk(b"subscribe").matches("subscribe")
    assert not Integer(1).matches("1")
    assert not ErrorFrame("subscribe").matches("subscribe")


def test_push_onto_array():
    frame = Array()
    frame.push_bulk(b"subscribe")
    frame.push_bulk(b"hello")
    frame.push_int(1)
    assert frame == Array([Bulk(b"subscribe"), Bulk(b"hello"), Integer(1)])