import pytest

from physik.errors import BadRequest, Conflict, NotFound
from physik.favorites import FavoritesService
from physik.stores import InMemoryFavoritesStore


@pytest.fixture
def favorites(catalog):
    store = InMemoryFavoritesStore()
    store.init_user("u1")
    return FavoritesService(catalog, store)


def test_list_follows_catalog_order(favorites):
    favorites.add("u1", "momentum")
    favorites.add("u1", "geschwindigkeit")
    assert [f.id for f in favorites.list("u1")] == ["geschwindigkeit", "momentum"]


def test_add_validates_formula_id(favorites):
    with pytest.raises(BadRequest):
        favorites.add("u1", None)
    with pytest.raises(NotFound):
        favorites.add("u1", "warp-antrieb")
    favorites.add("u1", "ohms-law")
    with pytest.raises(Conflict) as exc:
        favorites.add("u1", "ohms-law")
    assert exc.value.message == "Formel ist bereits in Favoriten"


def test_remove(favorites):
    favorites.add("u1", "ohms-law")
    favorites.remove("u1", "ohms-law")
    assert favorites.list("u1") == []
    with pytest.raises(NotFound) as exc:
        favorites.remove("u1", "ohms-law")
    assert exc.value.message == "Formel nicht in Favoriten gefunden"


def test_favorites_are_per_user(favorites):
    favorites.add("u1", "ohms-law")
    assert favorites.list("u2") == []
