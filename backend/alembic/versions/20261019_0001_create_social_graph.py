"""Create accounts, relationship edges, block edges and membership sets."""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

revision: str = "20261019_0001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

TIMESTAMP_DEFAULT = sa.text("CURRENT_TIMESTAMP")
ACTIVE_EDGE_PREDICATE = sa.text("status <> 'rejected'")


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=TIMESTAMP_DEFAULT,
        nullable=False,
    )


def _account_fk(name: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint([name], ["accounts.id"], ondelete="CASCADE")


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("username", sa.String(length=30), nullable=False),
        sa.Column(
            "is_private",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
    )
    op.create_index("ix_accounts_username", "accounts", ["username"], unique=False)

    op.create_table(
        "relationship_edges",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("sender_id", sa.String(length=36), nullable=False),
        sa.Column("receiver_id", sa.String(length=36), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "sender_id <> receiver_id",
            name="ck_relationship_edges_no_self_edge",
        ),
        _account_fk("sender_id"),
        _account_fk("receiver_id"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_relationship_edges_active",
        "relationship_edges",
        ["sender_id", "receiver_id", "kind"],
        unique=True,
        sqlite_where=ACTIVE_EDGE_PREDICATE,
        postgresql_where=ACTIVE_EDGE_PREDICATE,
    )
    op.create_index(
        "ix_relationship_edges_receiver_status",
        "relationship_edges",
        ["receiver_id", "status"],
        unique=False,
    )
    op.create_index(
        "ix_relationship_edges_sender_status",
        "relationship_edges",
        ["sender_id", "status"],
        unique=False,
    )

    op.create_table(
        "block_edges",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("blocker_id", sa.String(length=36), nullable=False),
        sa.Column("blocked_id", sa.String(length=36), nullable=False),
        _timestamp("created_at"),
        sa.CheckConstraint(
            "blocker_id <> blocked_id",
            name="ck_block_edges_no_self_block",
        ),
        _account_fk("blocker_id"),
        _account_fk("blocked_id"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("blocker_id", "blocked_id", name="uq_block_edges_pair"),
    )
    op.create_index(
        "ix_block_edges_blocked_blocker",
        "block_edges",
        ["blocked_id", "blocker_id"],
        unique=False,
    )

    op.create_table(
        "account_memberships",
        sa.Column("account_id", sa.String(length=36), nullable=False),
        sa.Column("relation", sa.String(length=16), nullable=False),
        sa.Column("member_id", sa.String(length=36), nullable=False),
        _timestamp("created_at"),
        _account_fk("account_id"),
        _account_fk("member_id"),
        sa.PrimaryKeyConstraint("account_id", "relation", "member_id"),
    )
    op.create_index(
        "ix_account_memberships_member",
        "account_memberships",
        ["member_id", "relation"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_account_memberships_member", table_name="account_memberships")
    op.drop_table("account_memberships")
    op.drop_index("ix_block_edges_blocked_blocker", table_name="block_edges")
    op.drop_table("block_edges")
    op.drop_index("ix_relationship_edges_sender_status", table_name="relationship_edges")
    op.drop_index("ix_relationship_edges_receiver_status", table_name="relationship_edges")
    op.drop_index("uq_relationship_edges_active", table_name="relationship_edges")
    op.drop_table("relationship_edges")
    op.drop_index("ix_accounts_username", table_name="accounts")
    op.drop_table("accounts")
