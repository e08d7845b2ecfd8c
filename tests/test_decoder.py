import pytest
from conftest import ALICE, BOB, SHOP, TOKEN, make_log
from eth_utils import keccak

from adrind.abi_events import make_event_registry_from_abi
from adrind.core.errors import MalformedLog
from adrind.decoding.decoder import decode_event
from adrind.sources.abis import (
    ADRIAN_LAB_CORE_ABI,
    ADRIAN_SHOP_ABI,
    ADRIAN_TOKEN_ABI,
    ADRIAN_TRAITS_EXTENSIONS_ABI,
    ERC20_ABI,
)

TOKEN_REGISTRY = make_event_registry_from_abi(ADRIAN_TOKEN_ABI)


def _decode(log, registry):
    return decode_event(topics=log.topics, data=log.data_bytes(), meta=log.meta(), registry=registry)


def test_decode_erc20_transfer() -> None:
    log = make_log(
        TOKEN_REGISTRY,
        "Transfer",
        {"from": ALICE, "to": BOB, "value": 10**30},
        address=TOKEN,
        block=12,
        log_index=3,
        block_timestamp=1_700_000_000,
    )
    event = _decode(log, TOKEN_REGISTRY)

    assert event is not None
    assert event.name == "Transfer"
    assert event.args == {"from": ALICE, "to": BOB, "value": 10**30}
    assert event.position == (12, 3)
    assert event.meta.block_timestamp == 1_700_000_000
    assert event.tx_hash == log.tx_hash


def test_decode_dynamic_data_fields() -> None:
    log = make_log(
        TOKEN_REGISTRY,
        "GalleryAction",
        {"from": ALICE, "to": BOB, "amount": 5, "action": "hang"},
        address=TOKEN,
        block=1,
    )
    event = _decode(log, TOKEN_REGISTRY)
    assert event is not None
    assert event["action"] == "hang"
    assert event["amount"] == 5


def test_decode_arrays() -> None:
    registry = make_event_registry_from_abi(ADRIAN_TRAITS_EXTENSIONS_ABI)
    log = make_log(
        registry,
        "TraitsAppliedBatch",
        {"tokenId": 9, "traitIds": [1, 2, 3], "categories": ["HEAD", "EYES", "MOUTH"]},
        address=SHOP,
        block=1,
    )
    event = _decode(log, registry)
    assert event is not None
    assert event.args == {"tokenId": 9, "traitIds": [1, 2, 3], "categories": ["HEAD", "EYES", "MOUTH"]}


def test_decode_address_array_lowercased() -> None:
    registry = make_event_registry_from_abi(ADRIAN_SHOP_ABI)
    log = make_log(
        registry,
        "WalletsAddedToAllowlist",
        {"assetId": 4, "wallets": [ALICE, BOB]},
        address=SHOP,
        block=1,
    )
    event = _decode(log, registry)
    assert event is not None
    assert event["wallets"] == [ALICE, BOB]


def test_indexed_string_is_kept_as_hash() -> None:
    registry = make_event_registry_from_abi(ADRIAN_LAB_CORE_ABI)
    log = make_log(registry, "MutationSkinSet", {"mutation": "ZOMBIE", "skinId": 2}, address=SHOP, block=1)
    event = _decode(log, registry)
    assert event is not None
    assert event["mutation"] == "0x" + keccak(text="ZOMBIE").hex()
    assert event["skinId"] == 2


def test_args_follow_abi_order() -> None:
    registry = make_event_registry_from_abi(ADRIAN_LAB_CORE_ABI)
    log = make_log(
        registry,
        "SkinUpdated",
        {"skinId": 1, "name": "gold", "rarity": 3, "active": True},
        address=SHOP,
        block=1,
    )
    event = _decode(log, registry)
    assert event is not None
    assert list(event.args) == ["skinId", "name", "rarity", "active"]


def test_unknown_topic0_returns_none() -> None:
    log = make_log(TOKEN_REGISTRY, "Staked", {"staker": ALICE, "amount": 1}, address=TOKEN, block=1)
    registry = make_event_registry_from_abi(ERC20_ABI)
    assert _decode(log, registry) is None


def test_empty_topics_returns_none() -> None:
    log = make_log(TOKEN_REGISTRY, "Staked", {"staker": ALICE, "amount": 1}, address=TOKEN, block=1)
    assert decode_event(topics=(), data=log.data_bytes(), meta=log.meta(), registry=TOKEN_REGISTRY) is None


def test_topic_count_mismatch_is_malformed() -> None:
    log = make_log(TOKEN_REGISTRY, "Transfer", {"from": ALICE, "to": BOB, "value": 1}, address=TOKEN, block=1)
    with pytest.raises(MalformedLog, match="expected 3 topics"):
        decode_event(topics=log.topics[:2], data=log.data_bytes(), meta=log.meta(), registry=TOKEN_REGISTRY)


def test_truncated_data_is_malformed() -> None:
    log = make_log(TOKEN_REGISTRY, "Transfer", {"from": ALICE, "to": BOB, "value": 1}, address=TOKEN, block=1)
    with pytest.raises(MalformedLog):
        decode_event(topics=log.topics, data=log.data_bytes()[:10], meta=log.meta(), registry=TOKEN_REGISTRY)
