from __future__ import annotations

import pytest

from soroban_pipeline import strkey

KNOWN_ACCOUNT = "GBZXN7PIRZGNMHGA7MUUUF4GWPY5AYPV6LY4UV2GL6VJGIQRXFDNMADI"


def test_crc16_xmodem_check_value() -> None:
    # Standard CRC-16/XMODEM check value for "123456789"
    assert strkey.crc16_xmodem(b"123456789") == 0x31C3


def test_known_account_is_valid() -> None:
    assert strkey.is_valid(KNOWN_ACCOUNT)
    assert strkey.kind_of(KNOWN_ACCOUNT) == strkey.ACCOUNT
    assert strkey.is_valid(KNOWN_ACCOUNT, [strkey.ACCOUNT, strkey.MUXED])
    assert not strkey.is_valid(KNOWN_ACCOUNT, [strkey.CONTRACT])


def test_encode_decode_prefixes() -> None:
    payload = bytes(range(32))
    for kind, prefix in ((strkey.ACCOUNT, "G"), (strkey.SEED, "S"), (strkey.CONTRACT, "C")):
        text = strkey.encode(kind, payload)
        assert text.startswith(prefix)
        assert len(text) == 56
        assert strkey.decode(kind, text) == payload


def test_reencoding_known_account_is_stable() -> None:
    raw = strkey.decode(strkey.ACCOUNT, KNOWN_ACCOUNT)
    assert strkey.encode(strkey.ACCOUNT, raw) == KNOWN_ACCOUNT


def test_corrupted_checksum_rejected() -> None:
    bad = KNOWN_ACCOUNT[:-1] + ("A" if KNOWN_ACCOUNT[-1] != "A" else "B")
    assert not strkey.is_valid(bad)
    with pytest.raises(strkey.StrkeyError):
        strkey.decode(strkey.ACCOUNT, bad)


@pytest.mark.parametrize("text", ["", "gbzxn7pirzgnmhga7muuuf4gwpy5aypv6ly4uv2gl6vjgiqrxfdnmadi", "G123", "not a key"])
def test_malformed_inputs_rejected(text: str) -> None:
    assert not strkey.is_valid(text)


def test_decode_requires_matching_kind() -> None:
    with pytest.raises(strkey.StrkeyError):
        strkey.decode(strkey.SEED, KNOWN_ACCOUNT)


def test_payload_length_enforced() -> None:
    with pytest.raises(strkey.StrkeyError):
        strkey.encode(strkey.ACCOUNT, b"\x01" * 31)


def test_muxed_account_public_key() -> None:
    key = b"\x05" * 32
    muxed = strkey.encode(strkey.MUXED, key + (1234).to_bytes(8, "big"))
    assert muxed.startswith("M")
    assert strkey.kind_of(muxed) == strkey.MUXED
    assert strkey.account_public_key(muxed) == key
    assert strkey.account_public_key(strkey.encode(strkey.ACCOUNT, key)) == key


def test_account_id_strips_mux_id() -> None:
    raw = strkey.decode(strkey.ACCOUNT, KNOWN_ACCOUNT)
    muxed = strkey.encode(strkey.MUXED, raw + (7).to_bytes(8, "big"))
    assert strkey.account_id(muxed) == KNOWN_ACCOUNT
    assert strkey.account_id(KNOWN_ACCOUNT) == KNOWN_ACCOUNT
    with pytest.raises(strkey.StrkeyError):
        strkey.account_id(strkey.encode(strkey.CONTRACT, raw))
