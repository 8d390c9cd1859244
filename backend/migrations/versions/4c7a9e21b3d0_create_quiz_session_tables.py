"""create quiz, session, answer, overrule and audit tables

Revision ID: 4c7a9e21b3d0
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c7a9e21b3d0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'quiz_file',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('author', sa.String(length=255), nullable=False),
        sa.Column('topic', sa.String(length=255), nullable=False),
        sa.Column('league', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('total_questions', sa.Integer(), nullable=False),
        sa.Column('total_rounds', sa.Integer(), nullable=False),
        sa.Column('times_played', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'quiz_question',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('quiz_file_id', sa.Integer(), sa.ForeignKey('quiz_file.id', ondelete='CASCADE'), nullable=False),
        sa.Column('round_number', sa.Integer(), nullable=False),
        sa.Column('player_number', sa.Integer(), nullable=False),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('question_image_url', sa.Text(), nullable=True),
        sa.Column('answer', sa.Text(), nullable=False),
        sa.Column('answer_image_url', sa.Text(), nullable=True),
        sa.Column('order_index', sa.Integer(), nullable=False),
    )
    op.create_index('ix_quiz_question_quiz_file_id', 'quiz_question', ['quiz_file_id'])
    op.create_table(
        'game_session',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('quiz_file_id', sa.Integer(), sa.ForeignKey('quiz_file.id'), nullable=False),
        sa.Column('league', sa.String(length=255), nullable=False),
        sa.Column('topic', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('current_question_id', sa.Integer(), sa.ForeignKey('quiz_question.id'), nullable=True),
        sa.Column('current_player_index', sa.Integer(), nullable=True),
        sa.Column('player_names', sa.Text(), nullable=False),
        sa.Column('scores', sa.Text(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'player_answer',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('game_session.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_id', sa.Integer(), sa.ForeignKey('quiz_question.id'), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('player_name', sa.String(length=255), nullable=False),
        sa.Column('attempt_order', sa.Integer(), nullable=False),
        sa.Column('spoken_answer', sa.Text(), nullable=True),
        sa.Column('result', sa.String(length=16), nullable=False),
        sa.Column('is_addressed', sa.Boolean(), nullable=False),
        sa.Column('time_taken', sa.Integer(), nullable=True),
        sa.Column('points_awarded', sa.Integer(), nullable=False),
        sa.Column('was_overruled', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_player_answer_session_id', 'player_answer', ['session_id'])
    op.create_table(
        'overrule_event',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('game_session.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_id', sa.Integer(), sa.ForeignKey('quiz_question.id'), nullable=False),
        sa.Column('original_answer_id', sa.Integer(), sa.ForeignKey('player_answer.id'), nullable=False),
        sa.Column('challenger_id', sa.Integer(), nullable=False),
        sa.Column('challenger_name', sa.String(length=255), nullable=False),
        sa.Column('claim_type', sa.String(length=50), nullable=False),
        sa.Column('original_result', sa.String(length=16), nullable=False),
        sa.Column('new_result', sa.String(length=16), nullable=False),
        sa.Column('points_adjustment', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_overrule_event_session_id', 'overrule_event', ['session_id'])
    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('game_session.id', ondelete='CASCADE'), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('entity_type', sa.String(length=50), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_audit_log_session_id', 'audit_log', ['session_id'])


def downgrade():
    op.drop_index('ix_audit_log_session_id', table_name='audit_log')
    op.drop_table('audit_log')
    op.drop_index('ix_overrule_event_session_id', table_name='overrule_event')
    op.drop_table('overrule_event')
    op.drop_index('ix_player_answer_session_id', table_name='player_answer')
    op.drop_table('player_answer')
    op.drop_table('game_session')
    op.drop_index('ix_quiz_question_quiz_file_id', table_name='quiz_question')
    op.drop_table('quiz_question')
    op.drop_table('quiz_file')
