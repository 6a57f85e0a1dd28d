"""Initial migration

Revision ID: initial_migration
Revises: 
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel

# revision identifiers, used by Alembic.
revision: str = 'initial_migration'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create files table
    op.create_table(
        'files',
        sa.Column('identifier', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('display_name', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('identifier')
    )
    op.create_index(op.f('ix_files_expires_at'), 'files', ['expires_at'], unique=False)

    # Create urls table
    op.create_table(
        'urls',
        sa.Column('identifier', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('target_url', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('identifier')
    )
    op.create_index(op.f('ix_urls_expires_at'), 'urls', ['expires_at'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_urls_expires_at'), table_name='urls')
    op.drop_table('urls')
    op.drop_index(op.f('ix_files_expires_at'), table_name='files')
    op.drop_table('files')
