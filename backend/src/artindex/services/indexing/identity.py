"""Identity keys for catalog entities and address normalization."""

import hashlib

from eth_utils.address import is_hex_address, to_normalized_address

from artindex.models.enums import Blockchain

# Contracts hosting works by many unrelated artists; contract-level creator data is meaningless
SHARED_CONTRACTS = frozenset(
    {
        # OpenSea shared storefront (ERC1155 and legacy)
        "0x495f947276749ce646f68ac8c248420045cb7b5e",
        "0xa5409ec958c83c3f309868babaca7c86dcb077c1",
        # hic et nunc / teia OBJKT and fxhash issuer
        "KT1RJ6PbjHpwc3M5rw5s2Nbmefwbuwbdxton",
        "KT1U6EHmNxJTkvaWJ4ThczG4FSDaHC21ssvi",
    }
)


def normalize_address(address: str) -> str:
    """Case-normalize a wallet or contract address.

    EVM hex addresses are lowercased (EIP-55 checksums are cosmetic). Tezos
    base58 addresses are case-sensitive and are only stripped.

    Raises:
        ValueError: If address is empty
    """
    if not address or not address.strip():
        raise ValueError("address is required")
    address = address.strip()
    if is_hex_address(address):
        return to_normalized_address(address)
    return address


def detect_blockchain(address: str | None) -> Blockchain:
    """Infer the chain family from an address prefix."""
    if not address:
        return Blockchain.UNKNOWN
    if address.startswith("0x"):
        return Blockchain.ETHEREUM
    if address[:3] in ("tz1", "tz2", "tz3", "tz4") or address.startswith("KT1"):
        return Blockchain.TEZOS
    return Blockchain.UNKNOWN


def is_shared_contract(contract_address: str | None) -> bool:
    if not contract_address:
        return False
    return normalize_address(contract_address) in SHARED_CONTRACTS


def artwork_uid(contract_address: str, token_id: str) -> str:
    return f"{normalize_address(contract_address)}:{token_id}"


def artist_identity_key(address: str | None, display_name: str | None = None) -> str:
    """Stable identity key for an artist.

    Uses the case-normalized wallet address when present. Otherwise the key is a
    hash of the display name so address-less creators still dedupe.

    Raises:
        ValueError: If neither an address nor a display name is given
    """
    if address and address.strip():
        return normalize_address(address).lower()
    if display_name and display_name.strip():
        digest = hashlib.sha1(display_name.strip().lower().encode("utf-8")).hexdigest()
        return f"name:{digest}"
    raise ValueError("artist identity requires an address or a display name")
