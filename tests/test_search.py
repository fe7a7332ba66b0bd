"""Tests for free-text image search."""

from sqlalchemy.orm import Session

from pinboard.search import ImageSearch, lexical_score, tokenize_query

from conftest import create_image, create_user


def test_tokenize_query_normalizes_and_dedupes():
    normalized, tokens = tokenize_query("  Red   FOX red!  ")
    assert normalized == "red fox red!"
    assert tokens == ["red", "fox"]


def test_tokenize_query_blank():
    assert tokenize_query("   ") == ("", [])
    assert tokenize_query("!!!") == ("!!!", [])


def test_lexical_score_counts_prefix_matches():
    assert lexical_score("foxes in the forest", "fox", ["fox"]) == 1
    assert lexical_score("a red fox and a red hen", "red", ["red"]) == 2
    assert lexical_score("unrelated words", "fox", ["fox"]) == 0


def test_lexical_score_rewards_whole_phrase():
    tokens = ["red", "fox"]
    together = lexical_score("a red fox", "red fox", tokens)
    apart = lexical_score("a fox that is red", "red fox", tokens)
    assert together > apart > 0


def test_search_matches_any_term_ranked_by_relevance(test_db: Session):
    owner = create_user(test_db)
    both = create_image(test_db, owner, title="Red fox", tags=["fox"], age_minutes=30)
    only_red = create_image(test_db, owner, title="Red barn", age_minutes=10)
    create_image(test_db, owner, title="Blue whale", age_minutes=0)

    images, total = ImageSearch(test_db).run("red fox", offset=0, limit=10)

    assert total == 2
    assert [image.id for image in images] == [both.id, only_red.id]


def test_search_breaks_ties_newest_first(test_db: Session):
    owner = create_user(test_db)
    older = create_image(test_db, owner, description="mountain lake", age_minutes=60)
    newer = create_image(test_db, owner, description="mountain lake", age_minutes=5)

    images, total = ImageSearch(test_db).run("mountain", offset=0, limit=10)

    assert total == 2
    assert [image.id for image in images] == [newer.id, older.id]


def test_search_matches_tags_and_is_case_insensitive(test_db: Session):
    owner = create_user(test_db)
    tagged = create_image(test_db, owner, title="Untitled", tags=["architecture"])

    images, total = ImageSearch(test_db).run("ARCHITECTURE", offset=0, limit=10)

    assert total == 1
    assert images[0].id == tagged.id


def test_search_paginates(test_db: Session):
    owner = create_user(test_db)
    for minutes in range(5):
        create_image(test_db, owner, title=f"cat {minutes}", age_minutes=minutes)

    page_two, total = ImageSearch(test_db).run("cat", offset=2, limit=2)

    assert total == 5
    assert [image.title for image in page_two] == ["cat 2", "cat 3"]


def test_search_without_word_tokens_returns_nothing(test_db: Session):
    owner = create_user(test_db)
    create_image(test_db, owner, title="anything")

    assert ImageSearch(test_db).run("%%%", offset=0, limit=10) == ([], 0)

