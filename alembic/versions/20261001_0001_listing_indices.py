"""listing and ordering indices

Revision ID: 20261001_0001
Revises:
Create Date: 2026-10-01 00:00:00

"""
from alembic import op

# revision identifiers, used by Alembic.
revision = "20261001_0001"
down_revision = None
branch_labels = None
depends_on = None

INDICES = [
    # listados públicos ordenados (created_at / rating) sin filas borradas
    ("ix_recipes_public_created", "recipes", ["is_public", "deleted_at", "created_at"]),
    ("ix_recipes_public_rating", "recipes", ["is_public", "deleted_at", "rating", "rating_count"]),
    ("ix_recipes_owner_created", "recipes", ["user_id", "deleted_at", "created_at"]),
    ("ix_ingredients_recipe_order", "ingredients", ["recipe_id", "order_index"]),
    ("ix_instructions_recipe_step", "instructions", ["recipe_id", "step"]),
    ("ix_shopping_list_items_list_order", "shopping_list_items", ["shopping_list_id", "order_index"]),
    ("ix_collections_owner_created", "collections", ["user_id", "deleted_at", "created_at"]),
    ("ix_shopping_lists_owner_created", "shopping_lists", ["user_id", "deleted_at", "created_at"]),
]


def upgrade():
    for name, table, columns in INDICES:
        op.create_index(name, table, columns, unique=False, if_not_exists=True)


def downgrade():
    for name, table, _ in reversed(INDICES):
        op.drop_index(name, table_name=table, if_exists=True)
