"""Normalizer: maps provider-shaped records into canonical IndexerData.

Pure functions, no I/O. Dispatch is on the record's DataSource tag, never on
the payload's shape, so a field name shared by two providers cannot be misread.

Creator resolution order for marketplace records (first match wins):
1. creator profile embedded on the token record
2. first entry of the verified creators list
3. no creator

The top-level ``creator`` address string is deliberately ignored. On shared
contracts it names the contract deployer rather than the artwork's author.
"""

from typing import Any, Callable

from artindex.core.timezone import parse_timestamp
from artindex.models.enums import Blockchain, DataSource
from artindex.services.indexing.identity import (
    detect_blockchain,
    is_shared_contract,
    normalize_address,
)
from artindex.services.indexing.media import (
    MediaKind,
    classify_media,
    is_generative,
    mime_from_url,
    resolve_ipfs_url,
    resolve_thumbnail,
)
from artindex.services.indexing.schemas import (
    UNTITLED,
    Attribute,
    CollectionData,
    CreatorData,
    Dimensions,
    IndexerData,
    SocialLinks,
)
from artindex.services.providers.base import ProviderRecord


def normalize(record: ProviderRecord) -> IndexerData:
    """Normalize a tagged provider record.

    Raises:
        ValueError: If the record's source has no normalizer
    """
    handler = _HANDLERS.get(record.source)
    if handler is None:
        raise ValueError(f"No normalizer registered for source {record.source!r}")
    data = handler(record.payload, record.blockchain)
    if not data.contract_address and record.contract_address:
        data.contract_address = normalize_address(record.contract_address)
    if not data.token_id and record.token_id:
        data.token_id = record.token_id
    return data


# OpenSea


def normalize_opensea(nft: dict[str, Any], blockchain: Blockchain) -> IndexerData:
    """Map an OpenSea v2 NFT object to IndexerData."""
    contract = (nft.get("contract") or "").lower() or None
    token_id = _str_or_none(nft.get("identifier"))

    image_url = resolve_ipfs_url(nft.get("image_url") or nft.get("display_image_url"))
    animation_url = resolve_ipfs_url(
        nft.get("animation_url") or nft.get("display_animation_url")
    )
    mime = nft.get("mime") or mime_from_url(animation_url) or mime_from_url(image_url)

    generator_url = None
    if animation_url and classify_media(animation_url) is MediaKind.INTERACTIVE:
        generator_url = animation_url

    collection = _opensea_collection(nft, contract, blockchain)

    return IndexerData(
        contract_address=contract,
        token_id=token_id,
        title=nft.get("name") or UNTITLED,
        description=nft.get("description") or None,
        image_url=image_url,
        animation_url=animation_url,
        generator_url=generator_url,
        thumbnail_url=resolve_thumbnail(
            resolve_ipfs_url(nft.get("display_image_url")), image_url
        ),
        metadata_url=resolve_ipfs_url(nft.get("metadata_url")),
        mime=mime,
        is_generative_art=collection.is_generative_art if collection else False,
        blockchain=blockchain.value,
        token_standard=(nft.get("token_standard") or "erc721").upper(),
        supply=_to_int(nft.get("supply")),
        mint_date=parse_timestamp(nft.get("mint_date") or nft.get("minted_at")),
        dimensions=_parse_dimensions(nft.get("dimensions")),
        attributes=_opensea_traits(nft.get("traits")),
        features=nft.get("features") if isinstance(nft.get("features"), dict) else None,
        creator=resolve_opensea_creator(nft),
        collection=collection,
    )


def resolve_opensea_creator(nft: dict[str, Any]) -> CreatorData | None:
    """Resolve the artwork's author from an OpenSea record (see module docstring)."""
    embedded = nft.get("creator_profile")
    if not isinstance(embedded, dict) and isinstance(nft.get("creator"), dict):
        embedded = nft["creator"]
    if isinstance(embedded, dict) and embedded.get("address"):
        return _opensea_account(embedded, "embedded_creator")

    verified = nft.get("verified_creators") or []
    if verified:
        first = verified[0]
        if isinstance(first, str):
            first = {"address": first}
        if isinstance(first, dict) and first.get("address"):
            creator = _opensea_account(first, "verified_creators")
            creator.is_verified = True
            return creator

    return None


def _opensea_account(account: dict[str, Any], source: str) -> CreatorData:
    socials = {
        (entry.get("platform") or "").lower(): entry.get("username")
        for entry in account.get("social_media_accounts") or []
        if isinstance(entry, dict)
    }
    twitter = _handle(socials.get("twitter") or socials.get("x") or account.get("twitter"))
    instagram = _handle(socials.get("instagram") or account.get("instagram"))
    website = account.get("website") or account.get("website_url")
    username = account.get("username") or account.get("display_name")

    return CreatorData(
        address=normalize_address(account["address"]),
        username=username,
        display_name=account.get("display_name") or username,
        bio=account.get("bio"),
        description=account.get("description") or account.get("bio"),
        avatar_url=resolve_ipfs_url(account.get("profile_image_url") or account.get("avatar_url")),
        profile_url=account.get("profile_url") or website,
        website_url=website,
        ens_name=account.get("ens_name"),
        is_verified=bool(account.get("is_verified")),
        twitter_handle=twitter,
        instagram_handle=instagram,
        resolution_source=source,
        social_links=_social_links(twitter, instagram, socials.get("discord"), website),
    )


def _opensea_collection(
    nft: dict[str, Any], contract: str | None, blockchain: Blockchain
) -> CollectionData | None:
    slug = nft.get("collection") or contract
    if not slug:
        return None
    title = nft.get("collection_name")
    description = nft.get("collection_description")
    return CollectionData(
        slug=slug,
        title=title,
        description=description,
        contract_address=contract,
        parent_contract=contract,
        chain_identifier=blockchain.value,
        website_url=nft.get("collection_website_url"),
        image_url=resolve_ipfs_url(nft.get("collection_image_url")),
        is_generative_art=bool(nft.get("collection_is_generative_art"))
        or is_generative(slug, title, description, contract_address=contract),
        is_shared_contract=bool(nft.get("collection_is_shared_contract"))
        or is_shared_contract(contract),
    )


def _opensea_traits(traits: Any) -> list[Attribute]:
    if not isinstance(traits, list):
        return []
    attributes = []
    for trait in traits:
        if isinstance(trait, dict) and trait.get("trait_type"):
            attributes.append(
                Attribute(trait_type=str(trait["trait_type"]), value=trait.get("value"))
            )
    return attributes


# objkt (Tezos)


def normalize_objkt(token: dict[str, Any], blockchain: Blockchain) -> IndexerData:
    """Map an objkt GraphQL token object to IndexerData."""
    fa = token.get("fa") or {}
    contract = fa.get("contract")
    mime = token.get("mime") or None

    display_url = resolve_ipfs_url(token.get("display_uri"))
    artifact_url = resolve_ipfs_url(token.get("artifact_uri"))
    thumbnail_source = resolve_ipfs_url(token.get("thumbnail_uri"))

    artifact_kind = (
        classify_media(token.get("artifact_uri"), mime) if artifact_url else MediaKind.IMAGE
    )
    animation_url = artifact_url if artifact_kind is not MediaKind.IMAGE else None
    generator_url = artifact_url if artifact_kind is MediaKind.INTERACTIVE else None

    image_url = display_url or (artifact_url if animation_url is None else None) or thumbnail_source

    metadata = token.get("metadata")
    features = None
    if isinstance(metadata, dict):
        features = metadata.get("features") if isinstance(metadata.get("features"), dict) else None
        metadata_url = None
    else:
        metadata_url = resolve_ipfs_url(metadata)

    collection = _objkt_collection(fa)

    return IndexerData(
        contract_address=contract,
        token_id=_str_or_none(token.get("token_id")),
        title=token.get("name") or UNTITLED,
        description=token.get("description") or None,
        image_url=image_url,
        animation_url=animation_url,
        generator_url=generator_url,
        thumbnail_url=resolve_thumbnail(thumbnail_source or display_url, image_url),
        metadata_url=metadata_url,
        mime=mime,
        is_generative_art=collection.is_generative_art if collection else False,
        blockchain=blockchain.value,
        token_standard="FA2",
        supply=_to_int(token.get("supply")),
        mint_date=parse_timestamp(token.get("timestamp")),
        dimensions=_objkt_dimensions(token),
        attributes=_objkt_attributes(token.get("attributes")),
        features=features,
        creator=resolve_objkt_creator(token),
        collection=collection,
    )


def resolve_objkt_creator(token: dict[str, Any]) -> CreatorData | None:
    """First listed creator with its holder profile, or None."""
    creators = token.get("creators") or []
    if not creators:
        return None
    first = creators[0] or {}
    holder = first.get("holder") or {}
    address = first.get("creator_address") or holder.get("address")
    if not address:
        return None

    twitter = _handle(holder.get("twitter"))
    instagram = _handle(holder.get("instagram"))
    website = holder.get("website")
    return CreatorData(
        address=normalize_address(address),
        username=holder.get("alias"),
        display_name=holder.get("alias"),
        bio=holder.get("description"),
        description=holder.get("description"),
        avatar_url=resolve_ipfs_url(holder.get("logo")),
        profile_url=website,
        website_url=website,
        twitter_handle=twitter,
        instagram_handle=instagram,
        resolution_source="objkt",
        social_links=_social_links(twitter, instagram, None, website),
    )


def _objkt_collection(fa: dict[str, Any]) -> CollectionData | None:
    contract = fa.get("contract")
    if not contract:
        return None
    return CollectionData(
        slug=contract,
        title=fa.get("name"),
        description=fa.get("description"),
        contract_address=contract,
        parent_contract=contract,
        chain_identifier=Blockchain.TEZOS.value,
        website_url=fa.get("website"),
        image_url=resolve_ipfs_url(fa.get("logo")),
        is_generative_art=is_generative(
            fa.get("name"), fa.get("description"), contract_address=contract
        ),
        is_shared_contract=is_shared_contract(contract),
    )


def _objkt_dimensions(token: dict[str, Any]) -> Dimensions | None:
    """Token dimensions, else the first TZIP-21 format entry that carries them."""
    dimensions = _parse_dimensions(token.get("dimensions"))
    if dimensions is not None:
        return dimensions
    metadata = token.get("metadata")
    formats = metadata.get("formats") if isinstance(metadata, dict) else None
    for entry in formats or []:
        if isinstance(entry, dict):
            dimensions = _parse_dimensions(entry.get("dimensions"))
            if dimensions is not None:
                return dimensions
    return None


def _objkt_attributes(attributes: Any) -> list[Attribute]:
    if not isinstance(attributes, list):
        return []
    result = []
    for entry in attributes:
        attribute = (entry or {}).get("attribute") or entry or {}
        name = attribute.get("name") or attribute.get("trait_type")
        if name:
            result.append(Attribute(trait_type=str(name), value=attribute.get("value")))
    return result


# Manual (admin-supplied IndexerData-like records)


def normalize_manual(payload: dict[str, Any], blockchain: Blockchain) -> IndexerData:
    """Validate an admin-supplied record and fill derived fields.

    Raises:
        pydantic.ValidationError: If the payload is not IndexerData-shaped
    """
    data = IndexerData.model_validate(payload)
    if data.contract_address:
        data.contract_address = normalize_address(data.contract_address)
        if Blockchain.parse(data.blockchain) is Blockchain.UNKNOWN:
            if blockchain is Blockchain.UNKNOWN:
                blockchain = detect_blockchain(data.contract_address)
            data.blockchain = blockchain.value
    if data.creator:
        data.creator.address = normalize_address(data.creator.address)
        data.creator.resolution_source = data.creator.resolution_source or "manual"
    if data.collection is None and data.contract_address:
        data.collection = CollectionData(
            slug=data.contract_address,
            contract_address=data.contract_address,
            parent_contract=data.contract_address,
            is_shared_contract=is_shared_contract(data.contract_address),
        )
    data.thumbnail_url = resolve_thumbnail(data.thumbnail_url, data.image_url)
    if not data.mime:
        data.mime = mime_from_url(data.animation_url) or mime_from_url(data.image_url)
    return data


_HANDLERS: dict[DataSource, Callable[[dict[str, Any], Blockchain], IndexerData]] = {
    DataSource.OPENSEA: normalize_opensea,
    DataSource.OBJKT: normalize_objkt,
    DataSource.MANUAL: normalize_manual,
}


# Helpers


def _str_or_none(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _to_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_dimensions(value: Any) -> Dimensions | None:
    """Accept {"width", "height"}, {"value": "WxH"} or a bare "WxH" string."""
    if isinstance(value, dict):
        if "width" in value and "height" in value:
            width, height = _to_int(value.get("width")), _to_int(value.get("height"))
            if width and height:
                return Dimensions(width=width, height=height)
            return None
        value = value.get("value")
    if isinstance(value, str) and "x" in value.lower():
        left, _, right = value.lower().partition("x")
        width, height = _to_int(left.strip()), _to_int(right.strip())
        if width and height:
            return Dimensions(width=width, height=height)
    return None


def _handle(value: str | None) -> str | None:
    """Reduce a social handle or profile URL to the bare handle."""
    if not value:
        return None
    value = value.strip().rstrip("/")
    if "/" in value:
        value = value.rsplit("/", 1)[-1]
    value = value.lstrip("@")
    return value or None


def _social_links(
    twitter: str | None, instagram: str | None, discord: str | None, website: str | None
) -> SocialLinks | None:
    if not any((twitter, instagram, discord, website)):
        return None
    return SocialLinks(twitter=twitter, instagram=instagram, discord=discord, website=website)
