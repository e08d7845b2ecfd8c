"""Default ingestion sources (Base mainnet)."""

from __future__ import annotations

from collections.abc import Mapping

from adrind.abi_events import make_event_registry_from_abi
from adrind.processors.custom import custom_events_handler, handlers_for
from adrind.processors.erc20 import erc20_handlers
from adrind.processors.erc721 import erc721_handlers
from adrind.processors.erc1155 import erc1155_handlers
from adrind.processors.floor_engine import floor_engine_handlers
from adrind.sources import Source, SourceRegistry
from adrind.sources.abis import (
    ADRIAN_LAB_CORE_ABI,
    ADRIAN_SHOP_ABI,
    ADRIAN_TOKEN_ABI,
    ADRIAN_TRAITS_CORE_ABI,
    ADRIAN_TRAITS_EXTENSIONS_ABI,
    FLOOR_ENGINE_ABI,
)

FLOOR_ENGINE_ADDRESS = "0x0351F7cBA83277E891D4a85Da498A7eACD764D58"
ADRIAN_TOKEN_ADDRESS = "0x7E99075Ce287F1cF8cBCAaa6A1C7894e404fD7Ea"
ADRIAN_LAB_CORE_ADDRESS = "0x6e369bf0e4e0c106192d606fb6d85836d684da75"
ADRIAN_TRAITS_CORE_ADDRESS = "0x90546848474fb3c9fda3fdad887969bb244e7e58"
ADRIAN_TRAITS_EXTENSIONS_ADDRESS = "0x0995c0da1ca071b792e852b6ec531b7cd7d1f8d6"
ADRIAN_SHOP_ADDRESS = "0x4b265927b1521995ce416bba3bed98231d2e946b"

TRAITS_EXTENSIONS_TABLE = "traits_extensions_events"
SHOP_TABLE = "shop_events"


def floor_engine_source(address: str = FLOOR_ENGINE_ADDRESS, cold_start_block: int = 0) -> Source:
    registry = make_event_registry_from_abi(FLOOR_ENGINE_ABI)
    return Source(
        id="floor_engine",
        display_name="FloorEngine",
        address=address,
        cold_start_block=cold_start_block,
        registry=registry,
        handlers=floor_engine_handlers(registry),
    )


def adrian_token_source(address: str = ADRIAN_TOKEN_ADDRESS, cold_start_block: int = 0) -> Source:
    registry = make_event_registry_from_abi(ADRIAN_TOKEN_ABI)
    return Source(
        id="adrian_token",
        display_name="ADRIAN Token",
        address=address,
        cold_start_block=cold_start_block,
        registry=registry,
        handlers=erc20_handlers(registry),
    )


def adrian_lab_core_source(address: str = ADRIAN_LAB_CORE_ADDRESS, cold_start_block: int = 31_180_024) -> Source:
    registry = make_event_registry_from_abi(ADRIAN_LAB_CORE_ABI)
    return Source(
        id="adrian_lab_core",
        display_name="AdrianLABCore",
        address=address,
        cold_start_block=cold_start_block,
        registry=registry,
        handlers=erc721_handlers(registry),
    )


def adrian_traits_core_source(
    address: str = ADRIAN_TRAITS_CORE_ADDRESS, cold_start_block: int = 32_334_620
) -> Source:
    registry = make_event_registry_from_abi(ADRIAN_TRAITS_CORE_ABI)
    return Source(
        id="adrian_traits_core",
        display_name="AdrianTraitsCore",
        address=address,
        cold_start_block=cold_start_block,
        registry=registry,
        handlers=erc1155_handlers(registry),
    )


def adrian_traits_extensions_source(
    address: str = ADRIAN_TRAITS_EXTENSIONS_ADDRESS, cold_start_block: int = 32_414_246
) -> Source:
    registry = make_event_registry_from_abi(ADRIAN_TRAITS_EXTENSIONS_ABI)
    return Source(
        id="adrian_traits_extensions",
        display_name="AdrianTraitsExtensions",
        address=address,
        cold_start_block=cold_start_block,
        registry=registry,
        handlers=handlers_for(registry, {}, default=custom_events_handler(TRAITS_EXTENSIONS_TABLE)),
    )


def adrian_shop_source(address: str = ADRIAN_SHOP_ADDRESS, cold_start_block: int = 33_273_455) -> Source:
    registry = make_event_registry_from_abi(ADRIAN_SHOP_ABI)
    return Source(
        id="adrian_shop",
        display_name="AdrianShop",
        address=address,
        cold_start_block=cold_start_block,
        registry=registry,
        handlers=handlers_for(registry, {}, default=custom_events_handler(SHOP_TABLE)),
    )


SOURCE_FACTORIES = {
    "floor_engine": floor_engine_source,
    "adrian_token": adrian_token_source,
    "adrian_lab_core": adrian_lab_core_source,
    "adrian_traits_core": adrian_traits_core_source,
    "adrian_traits_extensions": adrian_traits_extensions_source,
    "adrian_shop": adrian_shop_source,
}


def default_sources(
    cold_start_overrides: Mapping[str, int] | None = None,
    *,
    only: list[str] | None = None,
) -> SourceRegistry:
    """Build the production source registry.

    Parameters
    ----------
    cold_start_overrides : Mapping[str, int] | None
        Replace the cold-start height of the given source ids.
    only : list[str] | None
        Restrict the registry to these source ids (registration order is kept).
    """
    overrides = dict(cold_start_overrides or {})
    unknown = sorted((set(overrides) | set(only or ())) - set(SOURCE_FACTORIES))
    if unknown:
        raise ValueError(f"unknown source ids: {unknown}")

    sources = []
    for source_id, factory in SOURCE_FACTORIES.items():
        if only is not None and source_id not in only:
            continue
        if source_id in overrides:
            sources.append(factory(cold_start_block=overrides[source_id]))
        else:
            sources.append(factory())
    return SourceRegistry(sources)
