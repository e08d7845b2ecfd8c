"""Event ABIs of the ingested contracts (events only, JSON-ABI shaped dicts)."""

from __future__ import annotations

from typing import Any

AbiEntry = dict[str, Any]


def _arg(type_: str, name: str, indexed: bool = False) -> dict[str, Any]:
    return {"name": name, "type": type_, "indexed": indexed}


def _idx(type_: str, name: str) -> dict[str, Any]:
    return _arg(type_, name, indexed=True)


def _event(name: str, *inputs: dict[str, Any]) -> AbiEntry:
    return {"type": "event", "name": name, "anonymous": False, "inputs": list(inputs)}


# ---------------------------------------------------------------------------
# Token standards
# ---------------------------------------------------------------------------

ERC20_ABI: list[AbiEntry] = [
    _event("Transfer", _idx("address", "from"), _idx("address", "to"), _arg("uint256", "value")),
    _event("Approval", _idx("address", "owner"), _idx("address", "spender"), _arg("uint256", "value")),
]

ERC721_ABI: list[AbiEntry] = [
    _event("Transfer", _idx("address", "from"), _idx("address", "to"), _idx("uint256", "tokenId")),
    _event("Approval", _idx("address", "owner"), _idx("address", "approved"), _idx("uint256", "tokenId")),
    _event("ApprovalForAll", _idx("address", "owner"), _idx("address", "operator"), _arg("bool", "approved")),
]

ERC1155_ABI: list[AbiEntry] = [
    _event(
        "TransferSingle",
        _idx("address", "operator"),
        _idx("address", "from"),
        _idx("address", "to"),
        _arg("uint256", "id"),
        _arg("uint256", "value"),
    ),
    _event(
        "TransferBatch",
        _idx("address", "operator"),
        _idx("address", "from"),
        _idx("address", "to"),
        _arg("uint256[]", "ids"),
        _arg("uint256[]", "values"),
    ),
    _event("ApprovalForAll", _idx("address", "account"), _idx("address", "operator"), _arg("bool", "approved")),
    _event("URI", _arg("string", "value"), _idx("uint256", "id")),
]

# ---------------------------------------------------------------------------
# FloorEngine marketplace
# ---------------------------------------------------------------------------

FLOOR_ENGINE_ABI: list[AbiEntry] = [
    _event(
        "Listed",
        _idx("uint256", "tokenId"),
        _idx("address", "seller"),
        _arg("uint256", "price"),
        _arg("bool", "isContractOwned"),
    ),
    _event("Cancelled", _idx("uint256", "tokenId"), _idx("address", "seller")),
    _event(
        "Bought",
        _idx("uint256", "tokenId"),
        _idx("address", "buyer"),
        _idx("address", "seller"),
        _arg("uint256", "price"),
        _arg("bool", "isContractOwned"),
    ),
    _event(
        "FloorSweep",
        _idx("uint256", "tokenId"),
        _arg("uint256", "buyPrice"),
        _arg("uint256", "relistPrice"),
        _idx("address", "caller"),
        _arg("uint256", "callerReward"),
    ),
    _event("PremiumUpdated", _arg("uint16", "oldPremiumBps"), _arg("uint16", "newPremiumBps")),
    _event("MaxBuyPriceUpdated", _arg("uint256", "oldMaxBuyPrice"), _arg("uint256", "newMaxBuyPrice")),
    _event("CallerRewardModeUpdated", _arg("bool", "isPercentage")),
    _event("CallerRewardBpsUpdated", _arg("uint16", "oldBps"), _arg("uint16", "newBps")),
    _event("CallerRewardFixedUpdated", _arg("uint256", "oldFixed"), _arg("uint256", "newFixed")),
    _event("OwnershipTransferred", _idx("address", "previousOwner"), _idx("address", "newOwner")),
]

# ---------------------------------------------------------------------------
# ADRIAN token (ERC-20 + custom)
# ---------------------------------------------------------------------------

ADRIAN_TOKEN_ABI: list[AbiEntry] = [
    *ERC20_ABI,
    _event("TaxFeeUpdated", _arg("uint256", "newTaxFee")),
    _event("CreatorFeeUpdated", _arg("uint256", "newCreatorFee")),
    _event("BurnFeeUpdated", _arg("uint256", "newBurnFee")),
    _event("TaxAddressUpdated", _arg("address", "newTaxAddress")),
    _event("CreatorAddressUpdated", _arg("address", "newCreatorAddress")),
    _event("FeeExemptionUpdated", _idx("address", "account"), _arg("bool", "isExempt")),
    _event("Staked", _idx("address", "staker"), _arg("uint256", "amount")),
    _event("WithdrawnStake", _idx("address", "staker"), _arg("uint256", "amount"), _arg("uint256", "reward")),
    _event("RewardRateUpdated", _arg("uint256", "newRewardRate")),
    _event(
        "GalleryAction",
        _idx("address", "from"),
        _idx("address", "to"),
        _arg("uint256", "amount"),
        _arg("string", "action"),
    ),
]

# ---------------------------------------------------------------------------
# AdrianLABCore (ERC-721 + custom)
# ---------------------------------------------------------------------------

ADRIAN_LAB_CORE_ABI: list[AbiEntry] = [
    *ERC721_ABI,
    _event("TokenMinted", _idx("address", "to"), _idx("uint256", "tokenId")),
    _event("TokenBurnt", _idx("uint256", "tokenId"), _idx("address", "burner")),
    _event("SkinCreated", _idx("uint256", "skinId"), _arg("string", "name"), _arg("uint256", "rarity")),
    _event("SkinAssigned", _idx("uint256", "tokenId"), _idx("uint256", "skinId"), _arg("string", "name")),
    _event(
        "SkinUpdated",
        _idx("uint256", "skinId"),
        _arg("string", "name"),
        _arg("uint256", "rarity"),
        _arg("bool", "active"),
    ),
    _event("SkinRemoved", _idx("uint256", "skinId")),
    _event("RandomSkinToggled", _arg("bool", "enabled")),
    _event("MutationAssigned", _idx("uint256", "tokenId")),
    _event("MutationNameAssigned", _idx("uint256", "tokenId"), _arg("string", "newMutation")),
    _event("SerumApplied", _idx("uint256", "tokenId"), _arg("uint256", "serumId")),
    _event("MutationSkinSet", _idx("string", "mutation"), _idx("uint256", "skinId")),
    _event(
        "SpecialSkinApplied",
        _idx("uint256", "tokenId"),
        _idx("uint256", "skinId"),
        _arg("string", "mutation"),
    ),
    _event("BaseURIUpdated", _arg("string", "newURI")),
    _event("ExtensionsContractUpdated", _arg("address", "newContract")),
    _event("TraitsContractUpdated", _arg("address", "newContract")),
    _event("PaymentTokenUpdated", _arg("address", "newToken")),
    _event("TreasuryWalletUpdated", _arg("address", "newWallet")),
    _event("AdminContractUpdated", _arg("address", "newAdmin")),
    _event("FunctionImplementationUpdated", _idx("bytes4", "selector"), _idx("address", "implementation")),
    _event("ProceedsWithdrawn", _idx("address", "wallet"), _arg("uint256", "amount")),
    _event("FirstModification", _idx("uint256", "tokenId")),
]

# ---------------------------------------------------------------------------
# AdrianTraitsCore (ERC-1155 + custom)
# ---------------------------------------------------------------------------

ADRIAN_TRAITS_CORE_ABI: list[AbiEntry] = [
    *ERC1155_ABI,
    _event("AssetRegistered", _idx("uint256", "assetId"), _arg("string", "category"), _arg("uint8", "assetType")),
    _event("AssetMinted", _idx("uint256", "assetId"), _idx("address", "to"), _arg("uint256", "amount")),
    _event("AssetBurned", _idx("uint256", "assetId"), _idx("address", "from"), _arg("uint256", "amount")),
    _event("CategoryAdded", _idx("string", "category")),
    _event("CategoryRemoved", _idx("string", "category")),
    _event("AssetTypeAdded", _arg("string", "typeName")),
    _event("ExtensionAdded", _idx("address", "extension")),
    _event("ExtensionRemoved", _idx("address", "extension")),
    _event("PaymentTokenUpdated", _arg("address", "newToken")),
    _event("AssetUpdated", _idx("uint256", "assetId"), _arg("string", "field"), _arg("string", "newValue")),
    _event("BaseURIUpdated", _arg("string", "newURI")),
]

# ---------------------------------------------------------------------------
# AdrianTraitsExtensions
# ---------------------------------------------------------------------------

ADRIAN_TRAITS_EXTENSIONS_ABI: list[AbiEntry] = [
    _event("TraitEquipped", _idx("uint256", "tokenId"), _arg("string", "category"), _arg("uint256", "traitId")),
    _event("TraitUnequipped", _idx("uint256", "tokenId"), _arg("string", "category"), _arg("uint256", "traitId")),
    _event("TraitApplied", _idx("uint256", "tokenId"), _arg("string", "category"), _arg("uint256", "traitId")),
    _event(
        "TraitsAppliedBatch",
        _idx("uint256", "tokenId"),
        _arg("uint256[]", "traitIds"),
        _arg("string[]", "categories"),
    ),
    _event(
        "AssetAddedToInventory",
        _idx("uint256", "tokenId"),
        _idx("uint256", "assetId"),
        _arg("uint256", "amount"),
    ),
    _event(
        "AssetRemovedFromInventory",
        _idx("uint256", "tokenId"),
        _idx("uint256", "assetId"),
        _arg("uint256", "amount"),
    ),
    _event("CoreContractCallReceived", _idx("address", "core"), _arg("uint256", "timestamp")),
]

# ---------------------------------------------------------------------------
# AdrianShop
# ---------------------------------------------------------------------------

ADRIAN_SHOP_ABI: list[AbiEntry] = [
    _event(
        "ItemPurchased",
        _idx("address", "buyer"),
        _idx("uint256", "assetId"),
        _arg("uint256", "quantity"),
        _arg("uint256", "unitPrice"),
        _arg("uint256", "totalCost"),
        _arg("uint256", "freeAmount"),
    ),
    _event(
        "BatchPurchase",
        _idx("address", "buyer"),
        _arg("uint256[]", "assetIds"),
        _arg("uint256[]", "quantities"),
        _arg("uint256", "totalCost"),
        _arg("uint256", "totalFreeAmount"),
    ),
    _event("FreeItemClaimed", _idx("address", "user"), _idx("uint256", "assetId"), _arg("uint256", "quantity")),
    _event(
        "ShopItemConfigured",
        _idx("uint256", "assetId"),
        _arg("uint256", "price"),
        _arg("uint256", "quantityAvailable"),
        _arg("bool", "active"),
    ),
    _event("ShopItemTimingSet", _idx("uint256", "assetId"), _arg("uint256", "startTime"), _arg("uint256", "endTime")),
    _event("ShopItemStatusChanged", _idx("uint256", "assetId"), _arg("bool", "active")),
    _event(
        "ShopItemPriceChanged",
        _idx("uint256", "assetId"),
        _arg("uint256", "oldPrice"),
        _arg("uint256", "newPrice"),
    ),
    _event("ShopItemQuantityUpdated", _idx("uint256", "assetId"), _arg("uint256", "newQuantity")),
    _event(
        "AllowlistConfigured",
        _idx("uint256", "assetId"),
        _arg("uint256", "freePerWallet"),
        _arg("uint256", "walletsCount"),
    ),
    _event("WalletsAddedToAllowlist", _idx("uint256", "assetId"), _arg("address[]", "wallets")),
    _event("WalletsRemovedFromAllowlist", _idx("uint256", "assetId"), _arg("address[]", "wallets")),
    _event("ShopGlobalStatusChanged", _arg("bool", "active")),
    _event("TreasuryOverrideSet", _arg("address", "newTreasury")),
]
