"""Create assignments table

Revision ID: create_assignments_table
Revises: 
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'create_assignments_table'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'assignments',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('course_name', sa.Text, nullable=False),
        sa.Column('assignment_name', sa.Text, nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('due_date_time', sa.DateTime(timezone=False), nullable=False),
        sa.Column('notification_sent', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('submitted', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('course_name', 'assignment_name', name='course_assignment_unique'),
    )
    op.create_index('ix_assignments_course_name', 'assignments', ['course_name'])


def downgrade() -> None:
    op.drop_index('ix_assignments_course_name', table_name='assignments')
    op.drop_table('assignments')
