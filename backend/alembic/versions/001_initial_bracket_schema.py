"""Initial migration: create tournament, player, match, portfolioentry tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tournament",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("group_size", sa.Integer(), nullable=False, server_default="4"),
        sa.Column("best_of", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "player",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("display_seed", sa.Integer(), nullable=False),
        sa.Column("quadrant", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.UniqueConstraint("tournament_id", "rank", name="uq_tournament_player_rank"),
        sa.UniqueConstraint("tournament_id", "name", name="uq_tournament_player_name"),
    )
    op.create_index("ix_player_tournament_id", "player", ["tournament_id"])

    op.create_table(
        "match",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("round", sa.String(), nullable=False),
        sa.Column("round_index", sa.Integer(), nullable=False),
        sa.Column("match_number", sa.Integer(), nullable=False),
        sa.Column("quadrant", sa.Integer(), nullable=True),
        sa.Column("quadrant_match_number", sa.Integer(), nullable=True),
        sa.Column("player1_id", sa.Integer(), nullable=True),
        sa.Column("player2_id", sa.Integer(), nullable=True),
        sa.Column("player1_score", sa.Integer(), nullable=True),
        sa.Column("player2_score", sa.Integer(), nullable=True),
        sa.Column("game_scores", sa.JSON(), nullable=True),
        sa.Column("winner_id", sa.Integer(), nullable=True),
        sa.Column("next_match_id", sa.Integer(), nullable=True),
        sa.Column("next_match_slot", sa.Integer(), nullable=True),
        sa.Column("feed_policy", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="PENDING"),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["player1_id"], ["player.id"]),
        sa.ForeignKeyConstraint(["player2_id"], ["player.id"]),
        sa.ForeignKeyConstraint(["winner_id"], ["player.id"]),
        sa.ForeignKeyConstraint(["next_match_id"], ["match.id"]),
        sa.UniqueConstraint("tournament_id", "round", "match_number", name="uq_match_round_number"),
    )
    op.create_index("ix_match_tournament_id", "match", ["tournament_id"])

    op.create_table(
        "portfolioentry",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("analyst_name", sa.String(), nullable=False),
        sa.Column("selections", sa.JSON(), nullable=False),
        sa.Column("tiebreaker", sa.String(), nullable=True),
        sa.Column("predicted_winner", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.UniqueConstraint("tournament_id", "analyst_name", name="uq_tournament_analyst"),
    )
    op.create_index("ix_portfolioentry_tournament_id", "portfolioentry", ["tournament_id"])


def downgrade() -> None:
    op.drop_index("ix_portfolioentry_tournament_id", table_name="portfolioentry")
    op.drop_table("portfolioentry")
    op.drop_index("ix_match_tournament_id", table_name="match")
    op.drop_table("match")
    op.drop_index("ix_player_tournament_id", table_name="player")
    op.drop_table("player")
    op.drop_table("tournament")
