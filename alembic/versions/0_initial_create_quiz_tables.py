"""Initial migration - create quiz engine tables

Revision ID: 0_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

QUESTION_VARIANTS = (
    'true_false', 'single_choice', 'multiple_choice', 'short_answer', 'text_answer',
    'match_following', 'sortable', 'fill_blanks', 'audio_video',
)
ATTEMPT_STATUSES = ('in_progress', 'submitted', 'graded')


def upgrade() -> None:
    # ── Create enums ──────────────────────────────────────────────────
    op.execute("""
        DO $$ BEGIN
            CREATE TYPE question_variant_enum AS ENUM (
                'true_false', 'single_choice', 'multiple_choice', 'short_answer', 'text_answer',
                'match_following', 'sortable', 'fill_blanks', 'audio_video'
            );
        EXCEPTION WHEN duplicate_object THEN null;
        END $$;
    """)
    op.execute("""
        DO $$ BEGIN
            CREATE TYPE attempt_status_enum AS ENUM ('in_progress', 'submitted', 'graded');
        EXCEPTION WHEN duplicate_object THEN null;
        END $$;
    """)

    # ── quizzes table ─────────────────────────────────────────────────
    op.create_table(
        'quizzes',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('course_id', sa.String(64), nullable=False),
        sa.Column('lesson_id', sa.String(64), nullable=True),
        sa.Column('organization_id', sa.String(64), nullable=True),
        sa.Column('title', sa.String(300), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('time_limit_minutes', sa.Integer(), nullable=True),
        sa.Column('passing_score_percent', sa.Integer(), nullable=False, server_default='70'),
        sa.Column('max_attempts', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('randomize_questions', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('reveal_answers', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('allow_student_feedback', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_by', sa.String(64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_quizzes_course_id', 'quizzes', ['course_id'])
    op.create_index('ix_quizzes_lesson_id', 'quizzes', ['lesson_id'])
    op.create_index('ix_quizzes_is_deleted', 'quizzes', ['is_deleted'])

    # ── questions table ───────────────────────────────────────────────
    op.create_table(
        'questions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('quiz_id', sa.UUID(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('variant', postgresql.ENUM(*QUESTION_VARIANTS, name='question_variant_enum', create_type=False), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('explanation', sa.Text(), nullable=True),
        sa.Column('variant_data', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_questions_quiz_id', 'questions', ['quiz_id'])

    # ── attempts table ────────────────────────────────────────────────
    op.create_table(
        'attempts',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('quiz_id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('attempt_number', sa.Integer(), nullable=False),
        sa.Column('status', postgresql.ENUM(*ATTEMPT_STATUSES, name='attempt_status_enum', create_type=False), nullable=False, server_default='in_progress'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('time_spent_seconds', sa.Integer(), nullable=True),
        sa.Column('questions_snapshot', sa.JSON(), nullable=False),
        sa.Column('instructor_comments', sa.Text(), nullable=True),
        sa.Column('graded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('graded_by', sa.String(64), nullable=True),
        sa.Column('student_feedback', sa.Text(), nullable=True),
        sa.Column('student_rating', sa.Integer(), nullable=True),
        sa.Column('revision', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('quiz_id', 'user_id', 'attempt_number', name='uq_attempt_quiz_user_number'),
    )
    op.create_index('ix_attempts_quiz_id', 'attempts', ['quiz_id'])
    op.create_index('ix_attempts_user_id', 'attempts', ['user_id'])
    op.create_index('ix_attempts_status', 'attempts', ['status'])
    # At most one in-progress attempt per learner and quiz
    op.create_index(
        'uq_attempt_active_per_user',
        'attempts',
        ['quiz_id', 'user_id'],
        unique=True,
        postgresql_where=sa.text("status = 'in_progress'"),
    )

    # ── answer_records table ──────────────────────────────────────────
    op.create_table(
        'answer_records',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('attempt_id', sa.UUID(), nullable=False),
        sa.Column('question_id', sa.UUID(), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('is_correct', sa.Boolean(), nullable=True),
        sa.Column('awarded_points', sa.Integer(), nullable=True),
        sa.Column('requires_manual_grading', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('instructor_feedback', sa.Text(), nullable=True),
        sa.Column('rubric_selection', sa.JSON(), nullable=True),
        sa.Column('answered_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('graded_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['attempt_id'], ['attempts.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('attempt_id', 'question_id', name='uq_answer_attempt_question'),
    )
    op.create_index('ix_answer_records_attempt_id', 'answer_records', ['attempt_id'])

    # ── rubrics table ─────────────────────────────────────────────────
    op.create_table(
        'rubrics',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('organization_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('criteria', sa.JSON(), nullable=False),
        sa.Column('created_by', sa.String(64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_rubrics_organization_id', 'rubrics', ['organization_id'])


def downgrade() -> None:
    op.drop_table('rubrics')
    op.drop_table('answer_records')
    op.drop_index('uq_attempt_active_per_user', table_name='attempts')
    op.drop_table('attempts')
    op.drop_table('questions')
    op.drop_table('quizzes')
    op.execute("DROP TYPE IF EXISTS attempt_status_enum")
    op.execute("DROP TYPE IF EXISTS question_variant_enum")
