# tests/property/test_bounds_properties.py
"""Property-based tests for text bounding and embed size limits.

These verify that no event, however large or strange, produces an embed
that Discord would reject for size.
"""

from typing import Any

from hypothesis import given
from hypothesis import strategies as st

from discord_forwarder.contracts import Event, Level, MetadataLayout, SpanContext
from discord_forwarder.formatting import (
    MAX_DESCRIPTION_CHARS,
    MAX_EMBED_CHARS,
    MAX_EMBED_FIELDS,
    MAX_FIELD_NAME_CHARS,
    MAX_FIELD_VALUE_CHARS,
    MAX_FOOTER_CHARS,
    MAX_TITLE_CHARS,
    PayloadFormatter,
    chunk_metadata,
)
from discord_forwarder.text import ELLIPSIS, chunk, truncate

URL = "https://discord.com/api/webhooks/1/token"

json_values = st.recursive(
    st.none() | st.booleans() | st.integers() | st.floats(allow_nan=False) | st.text(max_size=200),
    lambda children: st.lists(children, max_size=5) | st.dictionaries(st.text(max_size=10), children, max_size=5),
    max_leaves=20,
)


def _long(prefix: str, min_size: int, max_size: int) -> st.SearchStrategy[str]:
    # Oversized strings built from a drawn length stay cheap for the shrinker
    return st.integers(min_value=min_size, max_value=max_size).map(lambda n: prefix * n)


field_keys = st.text(max_size=20) | _long("k", MAX_FIELD_NAME_CHARS + 1, 400)
field_values = json_values | _long("v", MAX_FIELD_VALUE_CHARS + 1, 5000)

events = st.builds(
    Event,
    target=st.text(max_size=50) | _long("t", MAX_FIELD_VALUE_CHARS, 1500),
    level=st.sampled_from(list(Level)),
    fields=st.dictionaries(field_keys, field_values | _long("m", MAX_DESCRIPTION_CHARS, 5000), max_size=40),
    file=st.none() | st.text(max_size=50) | _long("f", MAX_FIELD_VALUE_CHARS, 1500),
    line=st.none() | st.integers(min_value=0, max_value=10**6),
    span=st.none() | st.builds(SpanContext, name=st.text(max_size=50), fields=st.dictionaries(st.text(max_size=20), json_values, max_size=5)),
)


class TestTruncateProperties:
    @given(text=st.text(), limit=st.integers(min_value=1, max_value=5000))
    def test_never_exceeds_limit(self, text: str, limit: int) -> None:
        assert len(truncate(text, limit)) <= limit

    @given(text=st.text(), limit=st.integers(min_value=1, max_value=5000))
    def test_short_text_unchanged_long_text_marked(self, text: str, limit: int) -> None:
        result = truncate(text, limit)
        if len(text) <= limit:
            assert result == text
        else:
            assert len(result) == limit
            assert result.endswith(ELLIPSIS)
            assert text.startswith(result[:-1])


class TestChunkProperties:
    @given(text=st.text(), size=st.integers(min_value=1, max_value=500))
    def test_concatenation_restores_input(self, text: str, size: int) -> None:
        assert "".join(chunk(text, size)) == text

    @given(text=st.text(min_size=1), size=st.integers(min_value=1, max_value=500))
    def test_all_but_last_chunk_full(self, text: str, size: int) -> None:
        pieces = chunk(text, size)
        assert all(len(piece) == size for piece in pieces[:-1])
        assert 1 <= len(pieces[-1]) <= size

    @given(blob=st.text(min_size=1, max_size=5000), size=st.integers(min_value=1, max_value=1000))
    def test_metadata_chunk_names(self, blob: str, size: int) -> None:
        named = chunk_metadata(blob, size)
        names = [name for name, _ in named]
        if len(named) == 1:
            assert names == ["Metadata"]
        else:
            assert names == [f"Metadata ({i})" for i in range(1, len(named) + 1)]
        assert "".join(piece for _, piece in named) == blob


def _check_embed_bounds(payload: dict[str, Any]) -> None:
    [embed] = payload["embeds"]
    assert len(embed["title"]) <= MAX_TITLE_CHARS
    assert len(embed["description"]) <= MAX_DESCRIPTION_CHARS
    assert len(embed["footer"]["text"]) <= MAX_FOOTER_CHARS
    assert len(embed["fields"]) <= MAX_EMBED_FIELDS
    for field in embed["fields"]:
        assert 0 < len(field["name"]) <= MAX_FIELD_NAME_CHARS
        assert 0 < len(field["value"]) <= MAX_FIELD_VALUE_CHARS
    total = len(embed["title"]) + len(embed["description"]) + len(embed["footer"]["text"])
    total += sum(len(field["name"]) + len(field["value"]) for field in embed["fields"])
    assert total <= MAX_EMBED_CHARS


class TestEmbedBoundsProperties:
    @given(event=events, app_name=st.text(min_size=1, max_size=50) | _long("a", MAX_TITLE_CHARS, 3000))
    def test_field_layout_within_limits(self, event: Event, app_name: str) -> None:
        _check_embed_bounds(PayloadFormatter(app_name, URL).format(event).to_payload())

    @given(event=events)
    def test_blob_layout_within_limits(self, event: Event) -> None:
        formatter = PayloadFormatter("app", URL, layout=MetadataLayout.BLOB)
        _check_embed_bounds(formatter.format(event).to_payload())

    @given(event=events)
    def test_url_never_in_body(self, event: Event) -> None:
        secret_url = "https://discord.com/api/webhooks/999/s3cr3t-t0k3n-value"
        body = PayloadFormatter("app", secret_url).format(event).to_json()
        assert "s3cr3t-t0k3n-value" not in body
