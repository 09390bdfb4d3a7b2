"""initial simulations schema

Revision ID: initial_schema_20261019
Revises: 
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'initial_schema_20261019'
down_revision = None
branch_labels = None
depends_on = None


UUID = postgresql.UUID(as_uuid=True)


def _id() -> sa.Column:
    return sa.Column('id', UUID, primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now())


def upgrade() -> None:
    op.create_table(
        'users',
        _id(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('role', sa.Enum('admin', 'collaborator', 'student', name='role'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        _created_at(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'students',
        _id(),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        _created_at(),
    )

    op.create_table(
        'groups',
        _id(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('reference_collaborator_id', UUID, sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        _created_at(),
    )

    op.create_table(
        'group_members',
        _id(),
        sa.Column('group_id', UUID, sa.ForeignKey('groups.id', ondelete='CASCADE'), nullable=False),
        sa.Column('student_id', UUID, sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.UniqueConstraint('group_id', 'student_id', name='uq_group_members_group_student'),
    )

    op.create_table(
        'questions',
        _id(),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('type', sa.Enum('single_choice', 'multiple_choice', 'open_text', name='questiontype'), nullable=False),
        sa.Column('status', sa.Enum('draft', 'published', 'archived', name='questionstatus'), nullable=False),
        sa.Column('points', sa.Float(), nullable=False, server_default='1'),
        sa.Column('negative_points', sa.Float(), nullable=False, server_default='0'),
        sa.Column('created_by_id', UUID, sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        _created_at(),
    )

    op.create_table(
        'question_answers',
        _id(),
        sa.Column('question_id', UUID, sa.ForeignKey('questions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
    )

    op.create_table(
        'question_keywords',
        _id(),
        sa.Column('question_id', UUID, sa.ForeignKey('questions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('keyword', sa.String(), nullable=False),
        sa.Column('weight', sa.Float(), nullable=False, server_default='1'),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default=sa.text('false')),
    )

    op.create_table(
        'simulations',
        _id(),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.Enum('official', 'quick_quiz', 'personal', name='simulationtype'), nullable=False),
        sa.Column('status', sa.Enum('draft', 'published', 'archived', name='simulationstatus'), nullable=False),
        sa.Column('visibility', sa.Enum('private', 'group', 'public', name='simulationvisibility'), nullable=False),
        sa.Column('is_repeatable', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('max_attempts', sa.Integer(), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('use_question_points', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('correct_points', sa.Float(), nullable=False, server_default='1.5'),
        sa.Column('wrong_points', sa.Float(), nullable=False, server_default='-0.4'),
        sa.Column('blank_points', sa.Float(), nullable=False, server_default='0'),
        sa.Column('max_score', sa.Float(), nullable=True),
        sa.Column('passing_score', sa.Float(), nullable=True),
        sa.Column('show_results', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('show_correct_answers', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_by_id', UUID, sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'simulation_questions',
        _id(),
        sa.Column('simulation_id', UUID, sa.ForeignKey('simulations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_id', UUID, sa.ForeignKey('questions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('custom_points', sa.Float(), nullable=True),
        sa.Column('custom_negative_points', sa.Float(), nullable=True),
        sa.UniqueConstraint('simulation_id', 'question_id', name='uq_simulation_questions_pair'),
    )

    op.create_table(
        'simulation_assignments',
        _id(),
        sa.Column('simulation_id', UUID, sa.ForeignKey('simulations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('student_id', UUID, sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=True),
        sa.Column('group_id', UUID, sa.ForeignKey('groups.id', ondelete='CASCADE'), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.Enum('active', 'closed', 'completed', name='assignmentstatus'), nullable=False),
        sa.Column('kept_open', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('assigned_by_id', UUID, sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        _created_at(),
        sa.UniqueConstraint('simulation_id', 'student_id', name='uq_assignments_simulation_student'),
        sa.UniqueConstraint('simulation_id', 'group_id', name='uq_assignments_simulation_group'),
        sa.CheckConstraint('(student_id IS NULL) <> (group_id IS NULL)', name='ck_assignments_single_target'),
    )

    op.create_table(
        'simulation_results',
        _id(),
        sa.Column('simulation_id', UUID, sa.ForeignKey('simulations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('student_id', UUID, sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('assignment_id', UUID, sa.ForeignKey('simulation_assignments.id', ondelete='SET NULL'), nullable=True),
        sa.Column('answers', sa.JSON(), nullable=False),
        sa.Column('total_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('percentage_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('correct_answers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('wrong_answers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('blank_answers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('pending_answers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('duration_seconds', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    )
    # One unfinished attempt per student and simulation
    op.create_index(
        'uq_simulation_results_in_progress',
        'simulation_results',
        ['student_id', 'simulation_id'],
        unique=True,
        postgresql_where=sa.text('completed_at IS NULL'),
        sqlite_where=sa.text('completed_at IS NULL'),
    )

    op.create_table(
        'simulation_open_answers',
        _id(),
        sa.Column('result_id', UUID, sa.ForeignKey('simulation_results.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_id', UUID, sa.ForeignKey('questions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('answer_text', sa.Text(), nullable=False),
        sa.Column('auto_score', sa.Float(), nullable=True),
        sa.Column('max_points', sa.Float(), nullable=False, server_default='0'),
        sa.Column('earned_points', sa.Float(), nullable=True),
        sa.Column('validator_notes', sa.Text(), nullable=True),
        sa.Column('is_validated', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('validated_by_id', UUID, sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('validated_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'simulation_sessions',
        _id(),
        sa.Column('simulation_id', UUID, sa.ForeignKey('simulations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.Enum('waiting', 'started', 'completed', name='virtualroomstatus'), nullable=False),
        sa.Column('opened_by_id', UUID, sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )

    op.create_table(
        'notifications',
        _id(),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.Enum('simulation_assigned', 'open_answer_graded', name='notificationtype'), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        _created_at(),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_notifications_user_id', table_name='notifications')
    op.drop_table('notifications')
    op.drop_table('simulation_sessions')
    op.drop_table('simulation_open_answers')
    op.drop_index('uq_simulation_results_in_progress', table_name='simulation_results')
    op.drop_table('simulation_results')
    op.drop_table('simulation_assignments')
    op.drop_table('simulation_questions')
    op.drop_table('simulations')
    op.drop_table('question_keywords')
    op.drop_table('question_answers')
    op.drop_table('questions')
    op.drop_table('group_members')
    op.drop_table('groups')
    op.drop_table('students')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_name in (
        'notificationtype', 'virtualroomstatus', 'assignmentstatus', 'simulationvisibility',
        'simulationstatus', 'simulationtype', 'questionstatus', 'questiontype', 'role',
    ):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
