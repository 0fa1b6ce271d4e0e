"""IndexDescriptor 이름 규칙 테스트."""

import pytest

from index_migrations import IndexDescriptor, InvalidIndexNameError


def test_full_and_alias_name():
    index = IndexDescriptor("wild_animals", version=5, prefix="staging", language="english")

    assert index.full_name == "staging~english~wild_animals~v5"
    assert index.alias_name == "staging~english~wild_animals"


def test_empty_prefix_is_omitted():
    index = IndexDescriptor("books", version=2, language="en")

    assert index.full_name == "en~books~v2"
    assert index.alias_name == "en~books"


def test_custom_separator():
    index = IndexDescriptor("books", version=1, prefix="t", language="en", separator="-")

    assert index.full_name == "t-en-books-v1"
    assert index.alias_name == "t-en-books"


def test_alias_is_stable_across_versions():
    v1 = IndexDescriptor("books", version=1, prefix="t", language="en")
    v2 = v1.with_version(2)

    assert v1.alias_name == v2.alias_name
    assert v1.full_name != v2.full_name
    assert v2.full_name == "t~en~books~v2"


@pytest.mark.parametrize(
    "name",
    ["", "b", "-wild_animals", "WildAnimals", "wild~animals", "wild animals", "x" * 256],
)
def test_invalid_base_names_raise(name):
    with pytest.raises(InvalidIndexNameError, match="Index name"):
        IndexDescriptor(name, prefix="staging", language="english")


def test_dash_and_underscore_allowed():
    assert IndexDescriptor("wild-animals_2").base_name == "wild-animals_2"


def test_parse_with_prefix():
    index = IndexDescriptor.parse("staging~english~wild_animals~v5", "~")

    assert index.prefix == "staging"
    assert index.language == "english"
    assert index.base_name == "wild_animals"
    assert index.full_name == "staging~english~wild_animals~v5"


def test_parse_without_prefix():
    index = IndexDescriptor.parse("english@wild_animals@v5", "@")

    assert index.prefix == ""
    assert index.full_name == "english@wild_animals@v5"


def test_parse_rejects_unknown_shape():
    with pytest.raises(InvalidIndexNameError):
        IndexDescriptor.parse("just_a_name", "~")


def test_descriptor_is_immutable(books_descriptor):
    with pytest.raises(AttributeError):
        books_descriptor.version = 3
