"""Add question bank

Revision ID: 1_question_bank
Revises: 0_initial
Create Date: 2026-10-18 12:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '1_question_bank'
down_revision: Union[str, None] = '0_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

QUESTION_VARIANTS = (
    'true_false', 'single_choice', 'multiple_choice', 'short_answer', 'text_answer',
    'match_following', 'sortable', 'fill_blanks', 'audio_video',
)
DIFFICULTIES = ('easy', 'medium', 'hard')


def upgrade() -> None:
    op.execute("""
        DO $$ BEGIN
            CREATE TYPE question_difficulty_enum AS ENUM ('easy', 'medium', 'hard');
        EXCEPTION WHEN duplicate_object THEN null;
        END $$;
    """)

    # ── question_bank table ───────────────────────────────────────────
    op.create_table(
        'question_bank',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('organization_id', sa.String(64), nullable=False),
        sa.Column('created_by', sa.String(64), nullable=False),
        sa.Column('variant', postgresql.ENUM(*QUESTION_VARIANTS, name='question_variant_enum', create_type=False), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('explanation', sa.Text(), nullable=True),
        sa.Column('variant_data', sa.JSON(), nullable=False),
        sa.Column('default_points', sa.Integer(), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('difficulty', postgresql.ENUM(*DIFFICULTIES, name='question_difficulty_enum', create_type=False), nullable=False, server_default='medium'),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_question_bank_organization_id', 'question_bank', ['organization_id'])
    op.create_index('ix_question_bank_org_variant', 'question_bank', ['organization_id', 'variant'])

    # Provenance of questions imported from the bank
    op.add_column('questions', sa.Column('bank_item_id', sa.UUID(), nullable=True))


def downgrade() -> None:
    op.drop_column('questions', 'bank_item_id')
    op.drop_index('ix_question_bank_org_variant', table_name='question_bank')
    op.drop_index('ix_question_bank_organization_id', table_name='question_bank')
    op.drop_table('question_bank')
    op.execute("DROP TYPE IF EXISTS question_difficulty_enum")
