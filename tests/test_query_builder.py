"""Query builder tests."""
from sqlalchemy.dialects import postgresql, sqlite

from library_api.services.query_builder import BookQuery, QueryBuilder, SortKey, tag_contains, tag_in


def test_default_sort_is_newest_first():
    query = BookQuery.from_params()
    assert query.sort == (SortKey("createdAt", "desc"),)
    assert (query.page, query.limit) == (1, 10)


def test_unknown_sort_field_falls_back_to_default():
    query = BookQuery.from_params(sort_by="password", sort_order="asc")
    assert (query.sort_by, query.sort_order) == ("createdAt", "desc")


def test_sort_field_and_order():
    query = BookQuery.from_params(sort_by="title", sort_order="asc")
    clauses = [str(clause) for clause in QueryBuilder(query).order_by()]
    assert clauses == ["books.title ASC", "books.id ASC"]


def test_id_is_final_tie_break():
    query = BookQuery(sort=(SortKey("averageRating", "desc"), SortKey("createdAt", "desc")))
    clauses = [str(clause) for clause in QueryBuilder(query).order_by()]
    assert clauses == ["books.average_rating DESC", "books.created_at DESC", "books.id ASC"]


def test_absent_filters_are_skipped():
    assert QueryBuilder(BookQuery()).conditions() == []


def test_all_genre_means_no_filter():
    assert QueryBuilder(BookQuery(genre="All")).conditions() == []
    assert len(QueryBuilder(BookQuery(genre="Fantasy")).conditions()) == 1


def test_blank_text_filters_are_skipped():
    assert QueryBuilder(BookQuery(search="   ", author="")).conditions() == []


def test_every_filter_adds_a_condition():
    query = BookQuery(
        search="dune",
        genre="Sci-Fi",
        author="herbert",
        year_from=1960,
        year_to=1970,
        min_rating=4,
        availability="Available",
    )
    assert len(QueryBuilder(query).conditions()) == 7


def test_page_and_limit_are_clamped():
    builder = QueryBuilder(BookQuery(page=0, limit=1000))
    assert (builder.page, builder.limit) == (1, 100)

    builder = QueryBuilder(BookQuery(page=3, limit=10))
    assert builder.offset == 20


def test_search_matches_case_insensitively():
    condition = QueryBuilder(BookQuery(search="Dune")).conditions()[0]
    compiled = str(condition).lower()
    assert "books.title" in compiled
    assert "books.author" in compiled
    assert "books.description" in compiled
    assert "lower(" in compiled


def test_tag_predicates_read_array_elements():
    sqlite_sql = str(tag_contains("desert", "sqlite").compile(dialect=sqlite.dialect())).lower()
    assert "json_each(books.tags)" in sqlite_sql

    postgres_sql = str(tag_in(["Desert"], "postgresql").compile(dialect=postgresql.dialect())).lower()
    assert "jsonb_array_elements_text(books.tags)" in postgres_sql
