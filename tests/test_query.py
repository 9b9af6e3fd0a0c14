from datetime import timedelta

import pytest

from yummio_api.models_db import Difficulty, Recipe, utcnow
from yummio_api.repositories.recipes import RecipeRepository
from yummio_api.schemas import RecipeQuery
from yummio_api.services.composer import RecipeComposer
from yummio_api.services.query import Scope, build_listing
from yummio_api.services.recipes import RecipeService


@pytest.fixture
def owner(make_db_user):
    return make_db_user("Owner")


def _seed(session, owner, n, **fields):
    base = utcnow()
    rows = []
    for i in range(n):
        recipe = Recipe(user_id=owner.id, title=f"Receta {i:02d}", created_at=base + timedelta(seconds=i), **fields)
        session.add(recipe)
        rows.append(recipe)
    session.commit()
    return rows


def test_pagination_counts_before_paging(session, owner):
    _seed(session, owner, 25)
    service = RecipeService(session)

    page2 = service.list_public(RecipeQuery(page=2, limit=10))
    assert len(page2.recipes) == 10
    assert page2.total == 25
    assert (page2.page, page2.limit) == (2, 10)

    page3 = service.list_public(RecipeQuery(page=3, limit=10))
    assert len(page3.recipes) == 5
    assert page3.total == 25

    assert service.list_public(RecipeQuery(page=4, limit=10)).recipes == []


def test_default_order_is_newest_first(session, owner):
    _seed(session, owner, 3)
    titles = [r.title for r in RecipeService(session).list_public(RecipeQuery()).recipes]
    assert titles == ["Receta 02", "Receta 01", "Receta 00"]


def test_private_and_deleted_are_excluded_from_public(session, owner):
    public, private, deleted = _seed(session, owner, 3)
    private.is_public = False
    deleted.deleted_at = utcnow()
    session.add_all([private, deleted])
    session.commit()

    page = RecipeService(session).list_public(RecipeQuery())
    assert page.total == 1
    assert [r.id for r in page.recipes] == [public.id]


def test_owned_scope_includes_private_but_not_deleted(session, owner, make_db_user):
    public, private, deleted = _seed(session, owner, 3)
    private.is_public = False
    deleted.deleted_at = utcnow()
    session.add_all([private, deleted])
    _seed(session, make_db_user(), 2)

    page = RecipeService(session).my_recipes(owner.id, RecipeQuery())
    assert {r.id for r in page.recipes} == {public.id, private.id}
    assert page.total == 2


def test_scoped_listing_requires_user():
    with pytest.raises(ValueError):
        build_listing(RecipeQuery(), scope=Scope.owned)


def test_tags_filter_requires_all(session, owner):
    composer = RecipeComposer(session)
    both = composer.save(Recipe(user_id=owner.id, title="Both"), tags=["spicy", "quick"])
    composer.save(Recipe(user_id=owner.id, title="Only spicy"), tags=["spicy"])
    composer.save(Recipe(user_id=owner.id, title="Only quick"), tags=["quick", "cheap"])

    page = RecipeService(session).list_public(RecipeQuery(tags=["spicy", "quick"]))
    assert [r.id for r in page.recipes] == [both.id]
    assert page.total == 1
    assert sorted(t.name for t in page.recipes[0].tags) == ["quick", "spicy"]


def test_search_is_case_insensitive_on_title_and_description(session, owner):
    composer = RecipeComposer(session)
    composer.save(Recipe(user_id=owner.id, title="Tortilla de patatas"))
    composer.save(Recipe(user_id=owner.id, title="Gazpacho", description="Sopa fría de TOMATE"))
    composer.save(Recipe(user_id=owner.id, title="Paella"))
    composer.save(Recipe(user_id=owner.id, title="CRÈME BRÛLÉE"))

    service = RecipeService(session)
    assert service.search(RecipeQuery(search="TORTILLA")).total == 1
    assert [r.title for r in service.search(RecipeQuery(search="tomate")).recipes] == ["Gazpacho"]
    assert [r.title for r in service.search(RecipeQuery(search="crème brûlée")).recipes] == ["CRÈME BRÛLÉE"]


def test_search_treats_wildcards_literally(session, owner):
    composer = RecipeComposer(session)
    composer.save(Recipe(user_id=owner.id, title="100% integral"))
    composer.save(Recipe(user_id=owner.id, title="Pan blanco"))
    assert RecipeService(session).search(RecipeQuery(search="%")).total == 1
    assert RecipeService(session).search(RecipeQuery(search="_")).total == 0


def test_exact_filters(session, owner, make_db_user):
    composer = RecipeComposer(session)
    composer.save(Recipe(user_id=owner.id, title="A", difficulty=Difficulty.easy, type="dinner"))
    composer.save(Recipe(user_id=owner.id, title="B", difficulty=Difficulty.hard, type="dinner"))
    composer.save(Recipe(user_id=owner.id, title="C", difficulty=Difficulty.easy, type="dessert"))
    other = make_db_user()
    composer.save(Recipe(user_id=other.id, title="D", difficulty=Difficulty.easy, type="dinner"))

    service = RecipeService(session)
    assert {r.title for r in service.list_public(RecipeQuery(difficulty="easy", type="dinner")).recipes} == {"A", "D"}
    assert {r.title for r in service.list_public(RecipeQuery(user_id=other.id)).recipes} == {"D"}


def test_sort_by_title_asc(session, owner):
    composer = RecipeComposer(session)
    for title in ("Cuscús", "Arroz", "Bacalao"):
        composer.save(Recipe(user_id=owner.id, title=title))
    page = RecipeService(session).list_public(RecipeQuery(sort_by="title", sort_order="asc"))
    assert [r.title for r in page.recipes] == ["Arroz", "Bacalao", "Cuscús"]


def test_featured(session, owner):
    rows = _seed(session, owner, 5)
    stats = [(4.8, 3), (4.8, 10), (3.9, 50), (4.0, 1), (5.0, 2)]
    for recipe, (rating, count) in zip(rows, stats):
        recipe.rating, recipe.rating_count = rating, count
    rows[4].is_public = False
    session.add_all(rows)
    session.commit()

    featured = RecipeService(session).featured(limit=10)
    assert [(r.rating, r.rating_count) for r in featured] == [(4.8, 10), (4.8, 3), (4.0, 1)]
    assert len(RecipeService(session).featured(limit=1)) == 1


def test_favorites_scope_hides_recipes_no_longer_visible(session, owner, make_db_user):
    fan = make_db_user("Fan")
    visible, hidden = _seed(session, owner, 2)
    repo = RecipeRepository(session)
    repo.add_favorite(fan.id, visible.id)
    repo.add_favorite(fan.id, hidden.id)
    hidden.is_public = False
    session.add(hidden)
    session.commit()

    page = RecipeService(session).favorites(fan.id, RecipeQuery())
    assert [r.id for r in page.recipes] == [visible.id]
    assert page.total == 1
