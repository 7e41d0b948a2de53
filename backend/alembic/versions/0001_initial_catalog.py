"""initial_catalog

Revision ID: 0001_initial_catalog
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
import sqlmodel

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_initial_catalog"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

import_status = sa.Enum("PENDING", "PROCESSING", "IMPORTED", "FAILED", name="importstatus")


def upgrade() -> None:
    """Create catalog (artists, collections, artworks), staging and system state tables."""
    op.create_table(
        "artists",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("identity_key", sqlmodel.AutoString(length=255), nullable=False),
        sa.Column("name", sqlmodel.AutoString(length=255), nullable=False),
        sa.Column("bio", sqlmodel.AutoString(), nullable=True),
        sa.Column("avatar_url", sqlmodel.AutoString(), nullable=True),
        sa.Column("profile_url", sqlmodel.AutoString(), nullable=True),
        sa.Column("website_url", sqlmodel.AutoString(), nullable=True),
        sa.Column("twitter_handle", sqlmodel.AutoString(length=255), nullable=True),
        sa.Column("instagram_handle", sqlmodel.AutoString(length=255), nullable=True),
        sa.Column("ens_name", sqlmodel.AutoString(length=255), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        sa.Column("resolution_source", sqlmodel.AutoString(length=64), nullable=True),
        sa.Column("social_links", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_artists_identity_key", "artists", ["identity_key"], unique=True)
    op.create_index("ix_artists_name", "artists", ["name"], unique=True)

    op.create_table(
        "artist_wallets",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("artist_id", sa.Uuid(), nullable=False),
        sa.Column("address", sqlmodel.AutoString(length=64), nullable=False),
        sa.Column("blockchain", sqlmodel.AutoString(length=32), nullable=False),
        sa.Column("last_indexed", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["artist_id"], ["artists.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_artist_wallets_artist_id", "artist_wallets", ["artist_id"])
    op.create_index("ix_artist_wallets_address", "artist_wallets", ["address"], unique=True)

    op.create_table(
        "collections",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("slug", sqlmodel.AutoString(length=255), nullable=False),
        sa.Column("title", sqlmodel.AutoString(length=500), nullable=False),
        sa.Column("description", sqlmodel.AutoString(), nullable=True),
        sa.Column("contract_address", sqlmodel.AutoString(length=64), nullable=True),
        sa.Column("parent_contract", sqlmodel.AutoString(length=64), nullable=True),
        sa.Column("blockchain", sqlmodel.AutoString(length=32), nullable=True),
        sa.Column("website_url", sqlmodel.AutoString(), nullable=True),
        sa.Column("project_url", sqlmodel.AutoString(), nullable=True),
        sa.Column("image_url", sqlmodel.AutoString(), nullable=True),
        sa.Column("banner_image_url", sqlmodel.AutoString(), nullable=True),
        sa.Column("discord_url", sqlmodel.AutoString(), nullable=True),
        sa.Column("telegram_url", sqlmodel.AutoString(), nullable=True),
        sa.Column("medium_url", sqlmodel.AutoString(), nullable=True),
        sa.Column("is_generative_art", sa.Boolean(), nullable=False),
        sa.Column("is_shared_contract", sa.Boolean(), nullable=False),
        sa.Column("safelist_status", sqlmodel.AutoString(length=64), nullable=True),
        sa.Column("fees", sa.JSON(), nullable=True),
        sa.Column("total_supply", sa.Integer(), nullable=True),
        sa.Column("current_supply", sa.Integer(), nullable=True),
        sa.Column("mint_start_date", sa.DateTime(), nullable=True),
        sa.Column("mint_end_date", sa.DateTime(), nullable=True),
        sa.Column("floor_price", sa.Float(), nullable=True),
        sa.Column("volume_traded", sa.Float(), nullable=True),
        sa.Column("external_collection_id", sqlmodel.AutoString(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_collections_slug", "collections", ["slug"], unique=True)
    op.create_index("ix_collections_contract_address", "collections", ["contract_address"])

    op.create_table(
        "artist_collections",
        sa.Column("artist_id", sa.Uuid(), nullable=False),
        sa.Column("collection_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(["artist_id"], ["artists.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["collection_id"], ["collections.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("artist_id", "collection_id"),
    )

    op.create_table(
        "artworks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("uid", sqlmodel.AutoString(length=255), nullable=False),
        sa.Column("contract_address", sqlmodel.AutoString(length=64), nullable=False),
        sa.Column("token_id", sqlmodel.AutoString(length=128), nullable=False),
        sa.Column("blockchain", sqlmodel.AutoString(length=32), nullable=False),
        sa.Column("token_standard", sqlmodel.AutoString(length=32), nullable=True),
        sa.Column("title", sqlmodel.AutoString(length=500), nullable=False),
        sa.Column("description", sqlmodel.AutoString(), nullable=True),
        sa.Column("image_url", sqlmodel.AutoString(), nullable=True),
        sa.Column("animation_url", sqlmodel.AutoString(), nullable=True),
        sa.Column("generator_url", sqlmodel.AutoString(), nullable=True),
        sa.Column("thumbnail_url", sqlmodel.AutoString(), nullable=True),
        sa.Column("metadata_url", sqlmodel.AutoString(), nullable=True),
        sa.Column("mime", sqlmodel.AutoString(length=128), nullable=True),
        sa.Column("is_generative_art", sa.Boolean(), nullable=False),
        sa.Column("supply", sa.Integer(), nullable=True),
        sa.Column("mint_date", sa.DateTime(), nullable=True),
        sa.Column("width", sa.Integer(), nullable=True),
        sa.Column("height", sa.Integer(), nullable=True),
        sa.Column("attributes", sa.JSON(), nullable=True),
        sa.Column("features", sa.JSON(), nullable=True),
        sa.Column("collection_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["collection_id"], ["collections.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("contract_address", "token_id", name="uq_artworks_contract_token"),
    )
    op.create_index("ix_artworks_uid", "artworks", ["uid"], unique=True)
    op.create_index("ix_artworks_contract_address", "artworks", ["contract_address"])
    op.create_index("ix_artworks_collection_id", "artworks", ["collection_id"])

    op.create_table(
        "artist_artworks",
        sa.Column("artist_id", sa.Uuid(), nullable=False),
        sa.Column("artwork_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(["artist_id"], ["artists.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["artwork_id"], ["artworks.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("artist_id", "artwork_id"),
    )

    op.create_table(
        "artwork_index",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("contract_address", sqlmodel.AutoString(length=64), nullable=False),
        sa.Column("token_id", sqlmodel.AutoString(length=128), nullable=False),
        sa.Column("observation_type", sqlmodel.AutoString(length=16), nullable=False),
        sa.Column("data_source", sqlmodel.AutoString(length=32), nullable=False),
        sa.Column("blockchain", sqlmodel.AutoString(length=32), nullable=False),
        sa.Column("wallet_address", sqlmodel.AutoString(length=64), nullable=True),
        sa.Column("normalized_data", sa.JSON(), nullable=False),
        sa.Column("import_status", import_status, nullable=False),
        sa.Column("artwork_id", sa.Uuid(), nullable=True),
        sa.Column("error_message", sqlmodel.AutoString(length=1000), nullable=True),
        sa.Column("attempt_count", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(), nullable=False),
        sa.Column("last_attempt_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["artwork_id"], ["artworks.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "contract_address",
            "token_id",
            "observation_type",
            name="uq_artwork_index_contract_token_type",
        ),
    )
    op.create_index("ix_artwork_index_contract_address", "artwork_index", ["contract_address"])
    op.create_index("ix_artwork_index_wallet_address", "artwork_index", ["wallet_address"])
    op.create_index("ix_artwork_index_import_status", "artwork_index", ["import_status"])
    op.create_index("ix_artwork_index_artwork_id", "artwork_index", ["artwork_id"])

    op.create_table(
        "system_state",
        sa.Column("key", sqlmodel.AutoString(length=255), nullable=False),
        sa.Column("state_value", sa.JSON(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    """Drop every table created by upgrade()."""
    op.drop_table("system_state")
    op.drop_index("ix_artwork_index_artwork_id", table_name="artwork_index")
    op.drop_index("ix_artwork_index_import_status", table_name="artwork_index")
    op.drop_index("ix_artwork_index_wallet_address", table_name="artwork_index")
    op.drop_index("ix_artwork_index_contract_address", table_name="artwork_index")
    op.drop_table("artwork_index")
    op.drop_table("artist_artworks")
    op.drop_index("ix_artworks_collection_id", table_name="artworks")
    op.drop_index("ix_artworks_contract_address", table_name="artworks")
    op.drop_index("ix_artworks_uid", table_name="artworks")
    op.drop_table("artworks")
    op.drop_table("artist_collections")
    op.drop_index("ix_collections_contract_address", table_name="collections")
    op.drop_index("ix_collections_slug", table_name="collections")
    op.drop_table("collections")
    op.drop_index("ix_artist_wallets_address", table_name="artist_wallets")
    op.drop_index("ix_artist_wallets_artist_id", table_name="artist_wallets")
    op.drop_table("artist_wallets")
    op.drop_index("ix_artists_name", table_name="artists")
    op.drop_index("ix_artists_identity_key", table_name="artists")
    op.drop_table("artists")
    import_status.drop(op.get_bind(), checkfirst=True)
