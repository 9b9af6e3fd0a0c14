import pytest
from sqlalchemy import func
from sqlmodel import select

from yummio_api.models_db import Ingredient, Instruction, Nutrition, Rating, Recipe, RecipeTag, Tag
from yummio_api.repositories.recipes import RecipeRepository
from yummio_api.schemas import IngredientIn, InstructionIn, NutritionIn, ShoppingListItemIn
from yummio_api.services.composer import RecipeComposer, ShoppingListComposer


def _count(session, stmt) -> int:
    return session.exec(stmt).one()


def _recipe(owner, title="Tacos") -> Recipe:
    return Recipe(user_id=owner.id, title=title)


def test_existing_tag_is_reused(session, make_db_user):
    ann = make_db_user()
    composer = RecipeComposer(session)
    composer.save(_recipe(ann, "Chili"), tags=["spicy"])
    composer.save(_recipe(ann, "Curry"), tags=["spicy", "quick"])

    spicy = session.exec(select(Tag).where(Tag.name == "spicy")).all()
    assert len(spicy) == 1
    assert _count(session, select(func.count()).select_from(RecipeTag).where(RecipeTag.tag_id == spicy[0].id)) == 2
    assert _count(session, select(func.count()).select_from(Tag)) == 2


def test_tag_names_are_case_sensitive(session, make_db_user):
    ann = make_db_user()
    RecipeComposer(session).save(_recipe(ann), tags=["Vegan", "vegan"])
    assert _count(session, select(func.count()).select_from(Tag)) == 2


def test_ingredients_replaced_without_orphans(session, make_db_user):
    ann = make_db_user()
    composer = RecipeComposer(session)
    recipe = composer.save(_recipe(ann), ingredients=[
        IngredientIn(name="Tortilla"), IngredientIn(name="Carne"), IngredientIn(name="Cilantro"),
    ])
    rows = RecipeRepository(session).ingredients_for(recipe.id)
    assert [i.order_index for i in rows] == [0, 1, 2]

    composer.save(recipe, ingredients=[IngredientIn(name="Queso", order_index=5)])
    rows = session.exec(select(Ingredient).where(Ingredient.recipe_id == recipe.id)).all()
    assert [(i.name, i.order_index) for i in rows] == [("Queso", 5)]


def test_untouched_children_survive_update(session, make_db_user):
    ann = make_db_user()
    composer = RecipeComposer(session)
    recipe = composer.save(
        _recipe(ann),
        instructions=[InstructionIn(step=2, instruction="Servir"), InstructionIn(step=1, instruction="Cocinar")],
        nutrition=NutritionIn(calories=300),
    )
    recipe.title = "Tacos al pastor"
    composer.save(recipe)

    steps = [i.step for i in RecipeRepository(session).instructions_for(recipe.id)]
    assert steps == [1, 2]
    assert RecipeRepository(session).nutrition_for(recipe.id).calories == 300


def test_nutrition_upsert_and_drop(session, make_db_user):
    ann = make_db_user()
    composer = RecipeComposer(session)
    recipe = composer.save(_recipe(ann), nutrition=NutritionIn(calories=300))
    composer.save(recipe, nutrition=NutritionIn(calories=450, fat=12.5))
    rows = session.exec(select(Nutrition).where(Nutrition.recipe_id == recipe.id)).all()
    assert len(rows) == 1
    assert rows[0].calories == 450 and rows[0].fat == 12.5

    composer.save(recipe, drop_nutrition=True)
    assert RecipeRepository(session).nutrition_for(recipe.id) is None


def test_failed_composition_rolls_back_everything(session, make_db_user, monkeypatch):
    ann = make_db_user()

    def boom(self, recipe_id, rows):
        raise RuntimeError("disk full")

    monkeypatch.setattr(RecipeRepository, "replace_instructions", boom)
    with pytest.raises(RuntimeError):
        RecipeComposer(session).save(
            _recipe(ann),
            tags=["new-tag"],
            ingredients=[IngredientIn(name="Sal")],
            instructions=[InstructionIn(step=1, instruction="Mezclar")],
        )

    assert _count(session, select(func.count()).select_from(Recipe)) == 0
    assert _count(session, select(func.count()).select_from(Ingredient)) == 0
    assert _count(session, select(func.count()).select_from(Instruction)) == 0
    assert _count(session, select(func.count()).select_from(Tag)) == 0


def test_rating_mean_and_count(session, make_db_user):
    owner = make_db_user("Owner")
    recipe = RecipeComposer(session).save(_recipe(owner))
    composer = RecipeComposer(session)
    for value in (5, 4, 3, 2):
        composer.rate(make_db_user().id, recipe.id, value)

    stored = session.get(Recipe, recipe.id)
    assert stored.rating == pytest.approx(3.5)
    assert stored.rating_count == 4


def test_second_rating_from_same_user_updates_in_place(session, make_db_user):
    owner, rater, other = make_db_user(), make_db_user(), make_db_user()
    composer = RecipeComposer(session)
    recipe = composer.save(_recipe(owner))

    composer.rate(rater.id, recipe.id, 2, review="meh")
    composer.rate(other.id, recipe.id, 4)
    updated = composer.rate(rater.id, recipe.id, 5, review="¡mejor!")

    assert updated.rating_count == 2
    assert updated.rating == pytest.approx(4.5)
    ratings = session.exec(select(Rating).where(Rating.user_id == rater.id)).all()
    assert len(ratings) == 1
    assert ratings[0].rating == 5 and ratings[0].review == "¡mejor!"


def test_rating_without_ratings_is_zero(session, make_db_user):
    recipe = RecipeComposer(session).save(_recipe(make_db_user()))
    assert (recipe.rating, recipe.rating_count) == (0.0, 0)


def test_shopping_list_composition_keeps_submission_order(session, make_db_user):
    ann = make_db_user()
    composer = ShoppingListComposer(session)
    shopping_list, items = composer.create(ann.id, "Groceries", [
        ShoppingListItemIn(name="Milk", amount=1, unit="L"),
        ShoppingListItemIn(name="Eggs", amount=12, unit="pcs"),
    ])
    assert [(i.name, i.order_index) for i in items] == [("Milk", 0), ("Eggs", 1)]

    bread = composer.append(shopping_list, ShoppingListItemIn(name="Bread"))
    assert bread.order_index == 2
