#!/usr/bin/env python3
"""
Run database migration for the inventory ledger: ingredients, recipes, stock movements, alerts
"""
import asyncio
import asyncpg
from app.config import settings

STATEMENTS = [
    ("ingredients table", """
        CREATE TABLE IF NOT EXISTS ingredients (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            tenant_id UUID NOT NULL,
            name VARCHAR(200) NOT NULL,
            unit VARCHAR(20) NOT NULL DEFAULT 'kg',
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
        )
    """),
    ("stock columns on ingredients", """
        ALTER TABLE ingredients
        ADD COLUMN IF NOT EXISTS price_per_unit NUMERIC NOT NULL DEFAULT 0,
        ADD COLUMN IF NOT EXISTS current_stock NUMERIC NOT NULL DEFAULT 0 CHECK (current_stock >= 0),
        ADD COLUMN IF NOT EXISTS min_stock NUMERIC NOT NULL DEFAULT 0,
        ADD COLUMN IF NOT EXISTS is_active BOOLEAN NOT NULL DEFAULT true,
        ADD COLUMN IF NOT EXISTS stock_updated_at TIMESTAMP WITH TIME ZONE,
        ADD COLUMN IF NOT EXISTS updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
        ADD COLUMN IF NOT EXISTS deleted_at TIMESTAMP WITH TIME ZONE
    """),
    ("recipes table", """
        CREATE TABLE IF NOT EXISTS recipes (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            tenant_id UUID NOT NULL,
            name VARCHAR(200) NOT NULL,
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
        )
    """),
    ("cost columns on recipes", """
        ALTER TABLE recipes
        ADD COLUMN IF NOT EXISTS portions INTEGER NOT NULL DEFAULT 1 CHECK (portions > 0),
        ADD COLUMN IF NOT EXISTS sale_price NUMERIC NOT NULL DEFAULT 0,
        ADD COLUMN IF NOT EXISTS is_active BOOLEAN NOT NULL DEFAULT true,
        ADD COLUMN IF NOT EXISTS updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
        ADD COLUMN IF NOT EXISTS components JSONB NOT NULL DEFAULT '[]'::jsonb,
        ADD COLUMN IF NOT EXISTS calculated_cost NUMERIC,
        ADD COLUMN IF NOT EXISTS cost_per_portion NUMERIC,
        ADD COLUMN IF NOT EXISTS margin_percentage NUMERIC,
        ADD COLUMN IF NOT EXISTS food_cost_percentage NUMERIC,
        ADD COLUMN IF NOT EXISTS last_cost_calculation TIMESTAMP WITH TIME ZONE,
        ADD COLUMN IF NOT EXISTS deleted_at TIMESTAMP WITH TIME ZONE
    """),
    ("recipe components index", """
        CREATE INDEX IF NOT EXISTS idx_recipes_components
        ON recipes USING GIN (components jsonb_path_ops)
    """),
    ("stock_movements table", """
        CREATE TABLE IF NOT EXISTS stock_movements (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            tenant_id UUID NOT NULL,
            ingredient_id UUID NOT NULL,
            movement_type VARCHAR(20) NOT NULL
                CHECK (movement_type IN ('sale', 'purchase', 'adjustment', 'waste')),
            quantity NUMERIC NOT NULL,
            reference_type VARCHAR(20),
            reference_id UUID,
            notes TEXT,
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
        )
    """),
    ("stock_movements index", """
        CREATE INDEX IF NOT EXISTS idx_stock_movements_ingredient
        ON stock_movements (tenant_id, ingredient_id, created_at DESC)
    """),
    ("alerts table", """
        CREATE TABLE IF NOT EXISTS alerts (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            tenant_id UUID NOT NULL,
            type VARCHAR(30) NOT NULL,
            severity VARCHAR(10) NOT NULL DEFAULT 'warning'
                CHECK (severity IN ('info', 'warning', 'critical')),
            status VARCHAR(15) NOT NULL DEFAULT 'active'
                CHECK (status IN ('active', 'acknowledged', 'resolved')),
            title VARCHAR(200) NOT NULL,
            message TEXT,
            entity_type VARCHAR(20) NOT NULL,
            entity_id UUID NOT NULL,
            data JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
            acknowledged_at TIMESTAMP WITH TIME ZONE,
            acknowledged_by UUID,
            resolved_at TIMESTAMP WITH TIME ZONE
        )
    """),
    ("one active alert per entity and type", """
        CREATE UNIQUE INDEX IF NOT EXISTS uq_alerts_one_active
        ON alerts (tenant_id, entity_type, entity_id, type)
        WHERE status = 'active' AND type <> 'price_increase'
    """),
    ("alerts status index", """
        CREATE INDEX IF NOT EXISTS idx_alerts_tenant_status
        ON alerts (tenant_id, status, created_at DESC)
    """),
]

async def run_migration():
    """Create the ledger tables and indexes. Safe to run repeatedly."""

    conn = await asyncpg.connect(**settings.db_connection_params)

    try:
        print("🔧 Running migration: inventory ledger and alerts...")

        async with conn.transaction():
            for name, statement in STATEMENTS:
                await conn.execute(statement)
                print(f"  ✅ {name}")

        result = await conn.fetch("""
            SELECT table_name
            FROM information_schema.tables
            WHERE table_name IN ('ingredients', 'recipes', 'stock_movements', 'alerts')
            ORDER BY table_name
        """)

        print("\n✅ Verification:")
        for row in result:
            print(f"  - {row['table_name']}")

        if len(result) == 4:
            print("\n✅ Migration completed successfully!")
        else:
            print("\n❌ Migration may have failed - tables not found")

    except Exception as e:
        print(f"❌ Error running migration: {e}")
        raise
    finally:
        await conn.close()

if __name__ == "__main__":
    asyncio.run(run_migration())
