from __future__ import annotations

from netprint.response import ResponseStatus, classify_response
from netprint.signals import ChunkIndex, TransferCompleted, TransferError, Unparseable, classify_chunk_request

ADDR = ("192.0.2.10", 8686)


def test_success_on_trailing_ok():
    r = classify_response(b"CMD M86 Received.\r\nX:1 Y:2\r\nok\r\n", ADDR)
    assert r.status is ResponseStatus.SUCCESS
    assert r.ok
    assert r.body == "CMD M86 Received.\r\nX:1 Y:2\r"
    assert r.address == ADDR


def test_error_beats_ok():
    r = classify_response(b"open file error\r\nok\r\n", ADDR)
    assert r.status is ResponseStatus.FAILURE


def test_unknown_and_single_line_body():
    r = classify_response(b"  N 12 \r\n", ADDR)
    assert r.status is ResponseStatus.UNKNOWN
    assert r.body == "N 12"


def test_empty_and_binary_input():
    assert classify_response(b"", ADDR).status is ResponseStatus.UNKNOWN
    assert classify_response(b"\xff\xfe\x00\xaa", ADDR).status is ResponseStatus.UNKNOWN


def test_ok_line_body():
    assert classify_response(b"ok\r\n", ADDR).body == "ok"


def test_chunk_request_with_trailing_tokens():
    assert classify_chunk_request("N 1234 ok\r\n") == ChunkIndex(1234)


def test_chunk_request_after_response_classification():
    body = classify_response(b"N 1234 ok\r\n", ADDR).body
    assert classify_chunk_request(body) == ChunkIndex(1234)


def test_completed_has_priority():
    assert classify_chunk_request("N 7 File transfer completed") == TransferCompleted()


def test_error_signal():
    assert classify_chunk_request("File transfer error\r") == TransferError()
    assert classify_chunk_request("N 3 File transfer error") == TransferError()


def test_unparseable():
    assert isinstance(classify_chunk_request("ok"), Unparseable)
    assert isinstance(classify_chunk_request("N x"), Unparseable)
    assert isinstance(classify_chunk_request(""), Unparseable)


def test_largest_index_and_overflow():
    assert classify_chunk_request("N 18446744073709551615") == ChunkIndex(2**64 - 1)
    signal = classify_chunk_request("N 18446744073709551616 ok")
    assert isinstance(signal, Unparseable)
    assert "too large" in signal.reason


def test_leading_zeros():
    assert classify_chunk_request("N 0007") == ChunkIndex(7)
