"""Create prendas table

Revision ID: 001_prendas
Revises:
Create Date: 2026-10-19

One row per classified garment; imagen_url always points at the
background-removed image.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001_prendas'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'prendas',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('usuario_id', sa.String(), nullable=False),
        sa.Column('tipo', sa.String(), nullable=False, server_default='prenda'),
        sa.Column('genero', sa.String(), nullable=False, server_default='unisex'),
        sa.Column('imagen_url', sa.String(), nullable=False),
        sa.Column('descripcion', sa.String(), nullable=False, server_default=''),
        sa.Column('metadata_ia', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_prendas_usuario_id', 'prendas', ['usuario_id'])
    op.create_index('ix_prendas_tipo', 'prendas', ['tipo'])
    op.create_index('ix_prendas_created_at', 'prendas', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_prendas_created_at', table_name='prendas')
    op.drop_index('ix_prendas_tipo', table_name='prendas')
    op.drop_index('ix_prendas_usuario_id', table_name='prendas')
    op.drop_table('prendas')
