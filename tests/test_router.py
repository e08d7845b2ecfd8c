from dataclasses import replace

from conftest import ALICE, BOB, SHOP, TOKEN, make_log

from adrind.decoding.router import LogRouter
from adrind.sources import SourceRegistry
from adrind.sources.catalog import adrian_shop_source, adrian_token_source, default_sources


def _registry() -> SourceRegistry:
    return SourceRegistry(
        [
            adrian_token_source(address=TOKEN, cold_start_block=0),
            adrian_shop_source(address=SHOP, cold_start_block=0),
        ]
    )


def test_route_by_address_case_insensitive():
    sources = _registry()
    token = sources.get("adrian_token")
    log = make_log(token.registry, "Transfer", {"from": ALICE, "to": BOB, "value": 7}, address=TOKEN, block=3)
    log = replace(log, address=TOKEN.upper().replace("0X", "0x"))

    router = LogRouter(sources)
    routed = router.route(log)

    assert routed is not None
    assert routed.source.id == "adrian_token"
    assert routed.event.name == "Transfer"
    assert router.stats.routed == 1


def test_unrouted_address():
    sources = _registry()
    token = sources.get("adrian_token")
    log = make_log(token.registry, "Transfer", {"from": ALICE, "to": BOB, "value": 7}, address=ALICE, block=3)

    router = LogRouter(sources)
    assert router.route(log) is None
    assert router.stats.unrouted == 1


def test_same_topic_different_source_is_unknown():
    # an ERC-20 Transfer emitted by the shop address is not part of the shop's registry
    sources = _registry()
    token = sources.get("adrian_token")
    log = make_log(token.registry, "Transfer", {"from": ALICE, "to": BOB, "value": 7}, address=SHOP, block=3)

    router = LogRouter(sources)
    assert router.route(log) is None
    assert router.stats.unknown == 1


def test_erc721_and_erc20_transfers_decode_per_source():
    sources = default_sources()
    lab = sources.get("adrian_lab_core")
    log = make_log(
        lab.registry,
        "Transfer",
        {"from": ALICE, "to": BOB, "tokenId": 42},
        address=lab.address,
        block=31_200_000,
    )
    routed = LogRouter(sources).route(log)
    assert routed is not None
    assert routed.source.id == "adrian_lab_core"
    assert routed.event["tokenId"] == 42


def test_malformed_log_dropped():
    sources = _registry()
    token = sources.get("adrian_token")
    log = make_log(token.registry, "Transfer", {"from": ALICE, "to": BOB, "value": 7}, address=TOKEN, block=3)
    log = replace(log, data_hex="0x1234")

    router = LogRouter(sources)
    assert router.route(log) is None
    assert router.stats.malformed == 1


def test_bad_hex_is_malformed():
    sources = _registry()
    token = sources.get("adrian_token")
    log = make_log(token.registry, "Transfer", {"from": ALICE, "to": BOB, "value": 7}, address=TOKEN, block=3)
    log = replace(log, data_hex="0xzz")

    router = LogRouter(sources)
    assert router.route(log) is None
    assert router.stats.malformed == 1
