"""adding RLS policies

Revision ID: d0a036ac143c
Revises: c3f9e1a05b72
Create Date: 2026-09-14 11:20:13.551874

"""

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "d0a036ac143c"
down_revision: Union[str, Sequence[str], None] = "c3f9e1a05b72"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TENANT_TABLES = ["documents", "document_chunks", "index_jobs", "document_commands"]


def upgrade() -> None:
    """Enable Row Level Security and create isolation policies"""
    op.execute("ALTER TABLE tenants ENABLE ROW LEVEL SECURITY")
    op.execute("ALTER TABLE document_index_states ENABLE ROW LEVEL SECURITY")
    for table in TENANT_TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")

    # ============ Tenant Isolation Policies ==============
    op.execute("""
        CREATE POLICY tenant_isolation ON tenants
        FOR ALL
        USING (id = NULLIF(current_setting('app.current_tenant', true), '')::uuid)
    """)
    for table in TENANT_TABLES:
        op.execute(f"""
            CREATE POLICY tenant_isolation ON {table}
            FOR ALL
            USING (tenant_id = NULLIF(current_setting('app.current_tenant', true), '')::uuid)
        """)
    # index state rows have no tenant column; they follow their document
    op.execute("""
        CREATE POLICY tenant_isolation ON document_index_states
        FOR ALL
        USING (
            EXISTS (
                SELECT 1 FROM documents d
                WHERE d.id = document_index_states.document_id
            )
        )
    """)

    # ============= Service Role Policy (Maintenance Access) =============
    # The reconciler and job cleanup sweep every tenant.
    for table in [*TENANT_TABLES, "document_index_states"]:
        op.execute(f"""
            CREATE POLICY service_role_access ON {table}
            FOR ALL
            USING (current_setting('role', true) = 'service_role')
        """)


def downgrade() -> None:
    """Downgrade schema."""
    for table in ["document_index_states", *reversed(TENANT_TABLES)]:
        op.execute(f"DROP POLICY IF EXISTS service_role_access ON {table}")
        op.execute(f"DROP POLICY IF EXISTS tenant_isolation ON {table}")
        op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY")
    op.execute("DROP POLICY IF EXISTS tenant_isolation ON tenants")
    op.execute("ALTER TABLE tenants DISABLE ROW LEVEL SECURITY")
