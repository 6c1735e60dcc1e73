import pytest

from corekit.strings import first_valid_path_component, split


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/usr/local/lib", "usr"),
        ("plugins/git/timeout", "plugins"),
        ("//double//slash", "double"),
        ("/", ""),
        ("", ""),
        ("///", ""),
        ("./assets/icon.png", "."),
    ],
)
def test_first_valid_path_component(path, expected):
    assert first_valid_path_component(path) == expected


def test_first_valid_component_single_name():
    assert first_valid_path_component("name") == "name"


def test_split_drops_empty_tokens():
    assert split("a,,b,", ",") == ["a", "b"]


def test_split_leading_delimiter():
    assert split("/Core/log/path", "/") == ["Core", "log", "path"]


def test_split_empty_string():
    assert split("", ",") == []


def test_split_only_delimiters():
    assert split("////", "/") == []


def test_split_without_delimiter_present():
    assert split("whole", ",") == ["whole"]


def test_split_tokens_contain_no_delimiter():
    tokens = split("x;y;;z;;;w", ";")
    assert all(";" not in token and token for token in tokens)
    assert ";".join(tokens) == "x;y;z;w"


@pytest.mark.parametrize("delimiter", ["", "ab"])
def test_split_rejects_bad_delimiter(delimiter):
    with pytest.raises(ValueError):
        split("a,b", delimiter)