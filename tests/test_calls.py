from __future__ import annotations

import pytest
from eth_utils import keccak

from beaconanchor.domain.calls import (
    ADD_TIMESTAMP_SELECTOR,
    TIMESTAMP_TO_BLOCK_ROOT_SELECTOR,
    ZERO_ROOT,
    decode_bytes32,
    encode_add_timestamp,
    encode_timestamp_to_block_root,
    is_zero_root,
)
from beaconanchor.domain.errors import MalformedResponseError, TransientReadError


def test_selectors_are_keccak_prefixes():
    assert ADD_TIMESTAMP_SELECTOR == keccak(text="addTimestamp(uint256)")[:4]
    assert TIMESTAMP_TO_BLOCK_ROOT_SELECTOR == keccak(text="timestampToBlockRoot(uint256)")[:4]
    assert ADD_TIMESTAMP_SELECTOR != TIMESTAMP_TO_BLOCK_ROOT_SELECTOR


def test_call_is_selector_plus_one_big_endian_word():
    data = encode_add_timestamp(1_700_000_123)
    assert len(data) == 36
    assert data[:4] == ADD_TIMESTAMP_SELECTOR
    assert data[4:] == (1_700_000_123).to_bytes(32, "big")
    assert encode_timestamp_to_block_root(1)[-1] == 1


def test_negative_timestamp_rejected():
    with pytest.raises(ValueError):
        encode_add_timestamp(-1)


def test_short_result_is_malformed_and_transient():
    with pytest.raises(MalformedResponseError) as ei:
        decode_bytes32(b"\x00" * 31)
    assert isinstance(ei.value, TransientReadError)
    with pytest.raises(MalformedResponseError):
        decode_bytes32(b"")


def test_zero_root_sentinel():
    assert is_zero_root(decode_bytes32(ZERO_ROOT))
    assert not is_zero_root(b"\x00" * 31 + b"\x01")
