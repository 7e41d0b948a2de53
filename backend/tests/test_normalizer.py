"""Normalizer and media helper tests.

Tests focus on:
- Creator resolution order for marketplace records (embedded, verified, none)
- Media classification into image, animation and interactive URLs
- objkt token mapping (artifact/display URIs, holder profile, placeholder thumbnails)
- Manual records (camelCase input, chain detection, default collection)
- Address and identity key normalization
"""

import pytest

from artindex.models.enums import Blockchain, DataSource, ObservationType
from artindex.services.indexing.identity import (
    artist_identity_key,
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
from artindex.services.indexing.normalizer import normalize
from artindex.services.providers.base import ProviderRecord

WALLET = "0x00000000000000000000000000000000000a11ce"
ARTIST = "0x00000000000000000000000000000000000b0b00"
DEPLOYER = "0x000000000000000000000000000000000000dead"
CONTRACT = "0xC0FFEE0000000000000000000000000000000001"
HEN_PLACEHOLDER = "ipfs://QmNrhZHUaEqxhyLfqoq1mtHSipkWHeT31LNHb1QEbDHgnc"


def opensea_record(nft: dict) -> ProviderRecord:
    return ProviderRecord(
        source=DataSource.OPENSEA,
        blockchain=Blockchain.ETHEREUM,
        observation_type=ObservationType.OWNED,
        wallet_address=WALLET,
        contract_address=(nft.get("contract") or "").lower() or None,
        token_id=nft.get("identifier"),
        payload=nft,
    )


def opensea_nft(**overrides) -> dict:
    nft = {
        "identifier": "7",
        "contract": CONTRACT,
        "collection": "dawn-series",
        "collection_name": "Dawn",
        "token_standard": "erc721",
        "name": "Sunrise",
        "description": "First light",
        "image_url": "https://i.seadn.io/sunrise.png",
        "display_image_url": "https://i.seadn.io/sunrise.png",
        "metadata_url": "ipfs://QmMeta/7",
        "traits": [{"trait_type": "Palette", "value": "Warm"}],
    }
    nft.update(overrides)
    return nft


class TestOpenSeaCreatorResolution:
    def test_embedded_creator_profile_wins(self):
        nft = opensea_nft(
            creator=DEPLOYER,
            creator_profile={
                "address": ARTIST,
                "username": "bob",
                "social_media_accounts": [{"platform": "twitter", "username": "@bob_art"}],
            },
            verified_creators=[{"address": WALLET}],
        )

        data = normalize(opensea_record(nft))

        assert data.creator is not None
        assert data.creator.address == ARTIST
        assert data.creator.username == "bob"
        assert data.creator.twitter_handle == "bob_art"
        assert data.creator.resolution_source == "embedded_creator"

    def test_verified_creators_used_when_nothing_embedded(self):
        nft = opensea_nft(verified_creators=[ARTIST.upper().replace("0X", "0x")])
        data = normalize(opensea_record(nft))

        assert data.creator.address == ARTIST
        assert data.creator.is_verified is True
        assert data.creator.resolution_source == "verified_creators"

    def test_top_level_creator_string_is_ignored(self):
        """The bare creator address names the deployer, never the author."""
        data = normalize(opensea_record(opensea_nft(creator=DEPLOYER)))

        assert data.creator is None


class TestOpenSeaMapping:
    def test_core_fields(self):
        data = normalize(opensea_record(opensea_nft()))

        assert data.contract_address == CONTRACT.lower()
        assert data.token_id == "7"
        assert data.uid == f"{CONTRACT.lower()}:7"
        assert data.title == "Sunrise"
        assert data.token_standard == "ERC721"
        assert data.metadata_url == "https://ipfs.io/ipfs/QmMeta/7"
        assert data.mime == "image/png"
        assert [(a.trait_type, a.value) for a in data.attributes] == [("Palette", "Warm")]
        # Thumbnail identical to the image is not stored twice
        assert data.thumbnail_url is None

    def test_video_animation(self):
        data = normalize(opensea_record(opensea_nft(animation_url="https://cdn.example/loop.mp4")))

        assert data.animation_url == "https://cdn.example/loop.mp4"
        assert data.mime == "video/mp4"
        assert data.generator_url is None

    def test_html_animation_is_interactive(self):
        data = normalize(opensea_record(opensea_nft(animation_url="ipfs://QmGen/index.html")))

        assert data.animation_url == "https://ipfs.io/ipfs/QmGen/index.html"
        assert data.generator_url == data.animation_url

    def test_missing_name_gets_placeholder_title(self):
        data = normalize(opensea_record(opensea_nft(name=None)))
        assert data.title == "Untitled"

    def test_collection_slug_falls_back_to_contract(self):
        data = normalize(opensea_record(opensea_nft(collection=None, collection_name=None)))

        assert data.collection is not None
        assert data.collection.slug == CONTRACT.lower()
        assert data.collection.title is None
        assert data.collection.parent_contract == CONTRACT.lower()

    def test_shared_storefront_contract_flagged(self):
        shared = "0x495f947276749Ce646f68AC8c248420045cb7b5e"
        data = normalize(opensea_record(opensea_nft(contract=shared)))

        assert data.collection.is_shared_contract is True


def objkt_record(token: dict, observation_type=ObservationType.CREATED) -> ProviderRecord:
    return ProviderRecord(
        source=DataSource.OBJKT,
        blockchain=Blockchain.TEZOS,
        observation_type=observation_type,
        wallet_address="tz1VSUr8wwNhLAzempoch5d6hLRiTh8Cjcjb",
        contract_address=token["fa"]["contract"],
        token_id=str(token["token_id"]),
        payload=token,
    )


def objkt_token(**overrides) -> dict:
    token = {
        "token_id": "42",
        "name": "Tide",
        "description": "Low tide study",
        "display_uri": "ipfs://QmDisplay",
        "thumbnail_uri": "ipfs://QmThumb",
        "artifact_uri": "ipfs://QmArtifact",
        "mime": "image/jpeg",
        "supply": "10",
        "timestamp": "2021-06-01T12:00:00+00:00",
        "dimensions": {"value": "1200x800"},
        "fa": {"contract": "KT1RJ6PbjHpwc3M5rw5s2Nbmefwbuwbdxton", "name": "OBJKTs"},
        "creators": [
            {
                "creator_address": "tz1VSUr8wwNhLAzempoch5d6hLRiTh8Cjcjb",
                "holder": {
                    "address": "tz1VSUr8wwNhLAzempoch5d6hLRiTh8Cjcjb",
                    "alias": "Tidal",
                    "twitter": "https://twitter.com/tidal_art",
                    "logo": "ipfs://QmLogo",
                },
            }
        ],
        "attributes": [{"attribute": {"name": "Medium", "value": "Ink"}}],
    }
    token.update(overrides)
    return token


class TestObjktMapping:
    def test_still_image_token(self):
        data = normalize(objkt_record(objkt_token()))

        assert data.contract_address == "KT1RJ6PbjHpwc3M5rw5s2Nbmefwbuwbdxton"
        assert data.token_id == "42"
        assert data.blockchain == "tezos"
        assert data.token_standard == "FA2"
        assert data.image_url == "https://ipfs.io/ipfs/QmDisplay"
        assert data.animation_url is None
        assert data.thumbnail_url == "https://ipfs.io/ipfs/QmThumb"
        assert data.supply == 10
        assert (data.dimensions.width, data.dimensions.height) == (1200, 800)
        assert data.mint_date.year == 2021
        assert [(a.trait_type, a.value) for a in data.attributes] == [("Medium", "Ink")]

    def test_creator_from_holder_profile(self):
        data = normalize(objkt_record(objkt_token()))

        assert data.creator.address == "tz1VSUr8wwNhLAzempoch5d6hLRiTh8Cjcjb"
        assert data.creator.display_name == "Tidal"
        assert data.creator.twitter_handle == "tidal_art"
        assert data.creator.avatar_url == "https://ipfs.io/ipfs/QmLogo"
        assert data.creator.resolution_source == "objkt"

    def test_video_artifact_becomes_animation(self):
        data = normalize(objkt_record(objkt_token(mime="video/mp4")))

        assert data.animation_url == "https://ipfs.io/ipfs/QmArtifact"
        assert data.image_url == "https://ipfs.io/ipfs/QmDisplay"
        assert data.generator_url is None

    def test_html_artifact_is_generator(self):
        data = normalize(objkt_record(objkt_token(mime="application/x-directory")))

        assert data.generator_url == "https://ipfs.io/ipfs/QmArtifact"

    def test_declared_image_mime_beats_path_keywords(self):
        token = objkt_token(
            mime="image/png",
            artifact_uri="ipfs://QmSeries/interactive-series/1.png",
            display_uri=None,
        )

        data = normalize(objkt_record(token))

        assert data.animation_url is None
        assert data.generator_url is None
        assert data.image_url == "https://ipfs.io/ipfs/QmSeries/interactive-series/1.png"

    def test_placeholder_thumbnail_replaced(self):
        data = normalize(objkt_record(objkt_token(thumbnail_uri=HEN_PLACEHOLDER)))

        # Replaced by the display image, which is then not stored twice
        assert data.thumbnail_url is None

    def test_dimensions_from_metadata_formats(self):
        token = objkt_token(
            dimensions=None,
            metadata={
                "formats": [
                    {"uri": "ipfs://QmArtifact", "mimeType": "image/jpeg"},
                    {"uri": "ipfs://QmDisplay", "dimensions": {"unit": "px", "value": "640x480"}},
                ]
            },
        )

        data = normalize(objkt_record(token))

        assert (data.dimensions.width, data.dimensions.height) == (640, 480)
        assert data.metadata_url is None

    def test_token_without_creators(self):
        data = normalize(objkt_record(objkt_token(creators=[])))
        assert data.creator is None

    def test_collection_from_fa_contract(self):
        data = normalize(objkt_record(objkt_token()))

        assert data.collection.slug == "KT1RJ6PbjHpwc3M5rw5s2Nbmefwbuwbdxton"
        assert data.collection.title == "OBJKTs"
        assert data.collection.is_shared_contract is True


def manual_record(payload: dict) -> ProviderRecord:
    return ProviderRecord(
        source=DataSource.MANUAL,
        blockchain=Blockchain.UNKNOWN,
        observation_type=ObservationType.OWNED,
        wallet_address="",
        contract_address=payload.get("contractAddress"),
        token_id=payload.get("tokenId"),
        payload=payload,
    )


class TestManualMapping:
    @pytest.mark.parametrize("title", [None, "", "   "])
    def test_missing_title_gets_placeholder(self, title):
        data = normalize(
            manual_record({"contractAddress": CONTRACT, "tokenId": "7", "title": title})
        )

        assert data.title == "Untitled"

    def test_camel_case_payload(self):
        data = normalize(
            manual_record(
                {
                    "contractAddress": CONTRACT,
                    "tokenId": "9",
                    "title": "Manual",
                    "imageUrl": "https://img.example/9.webp",
                    "creator": {
                        "address": ARTIST.upper().replace("0X", "0x"),
                        "displayName": "Bob",
                    },
                }
            )
        )

        assert data.contract_address == CONTRACT.lower()
        assert data.blockchain == "ethereum"
        assert data.mime == "image/webp"
        assert data.creator.address == ARTIST
        assert data.creator.resolution_source == "manual"
        assert data.collection.slug == CONTRACT.lower()

    def test_tezos_contract_detected(self):
        data = normalize(manual_record({"contractAddress": "KT1abcdef", "tokenId": "1"}))

        assert data.blockchain == "tezos"
        assert data.title == "Untitled"


class TestMediaHelpers:
    @pytest.mark.parametrize(
        "url,mime,expected",
        [
            ("https://x/a.png", None, MediaKind.IMAGE),
            ("https://x/a", "image/png", MediaKind.IMAGE),
            ("https://x/a", "video/mp4", MediaKind.ANIMATION),
            ("https://x/a.gif", None, MediaKind.ANIMATION),
            ("https://x/a.html", None, MediaKind.INTERACTIVE),
            ("https://x/a", "application/x-directory", MediaKind.INTERACTIVE),
            ("https://x/generator/a", None, MediaKind.INTERACTIVE),
            ("https://x/a.mp4", "image/png", MediaKind.IMAGE),
            ("https://x/generator/a.png", "image/png", MediaKind.IMAGE),
            ("https://x/interactive-series/1.png", None, MediaKind.IMAGE),
        ],
    )
    def test_classify_media(self, url, mime, expected):
        assert classify_media(url, mime) is expected

    def test_resolve_ipfs_url(self):
        assert resolve_ipfs_url("ipfs://QmX") == "https://ipfs.io/ipfs/QmX"
        assert resolve_ipfs_url("ipfs://ipfs/QmX/1.png") == "https://ipfs.io/ipfs/QmX/1.png"
        assert resolve_ipfs_url("https://a/b") == "https://a/b"
        assert resolve_ipfs_url(None) is None

    def test_mime_from_url(self):
        assert mime_from_url("https://x/y/clip.WEBM?size=2") == "video/webm"
        assert mime_from_url("https://x/y/noext") is None

    def test_resolve_thumbnail_drops_non_image(self):
        assert resolve_thumbnail("https://x/t.mp4", "https://x/i.png") is None
        assert resolve_thumbnail("https://x/t.png", "https://x/i.png") == "https://x/t.png"

    def test_is_generative(self):
        assert is_generative("Chromie Squiggle by Art Blocks")
        assert is_generative(None, contract_address="KT1U6EHmNxJTkvaWJ4ThczG4FSDaHC21ssvi")
        assert not is_generative("Hand-drawn sketches")


class TestIdentity:
    def test_normalize_address(self):
        assert normalize_address(" 0xC0FFEE0000000000000000000000000000000001 ") == CONTRACT.lower()
        tezos = "tz1VSUr8wwNhLAzempoch5d6hLRiTh8Cjcjb"
        assert normalize_address(tezos) == tezos
        with pytest.raises(ValueError):
            normalize_address("  ")

    def test_detect_blockchain(self):
        assert detect_blockchain("0xabc") is Blockchain.ETHEREUM
        assert detect_blockchain("tz2abc") is Blockchain.TEZOS
        assert detect_blockchain("KT1abc") is Blockchain.TEZOS
        assert detect_blockchain("addr1") is Blockchain.UNKNOWN

    def test_artist_identity_key(self):
        assert artist_identity_key(ARTIST.upper().replace("0X", "0x")) == ARTIST
        assert artist_identity_key(None, "Anon").startswith("name:")
        assert artist_identity_key(None, "Anon") == artist_identity_key("", " anon ")
        with pytest.raises(ValueError):
            artist_identity_key(None, None)

    def test_is_shared_contract(self):
        assert is_shared_contract("0x495F947276749CE646F68AC8C248420045CB7B5E")
        assert not is_shared_contract(CONTRACT)
