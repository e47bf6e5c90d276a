"""
Property-based tests for blob storage, entry lifetimes and input parsing.
"""

import io
from datetime import datetime, timedelta, timezone

import pytest
from hypothesis import given
from hypothesis import strategies as st

from dropbin.domain.content import (
    ACCEPTED_TTLS,
    Entry,
    EntryIdGenerator,
    TimeToLive,
    parse_access_limit,
)
from dropbin.domain.errors import InvalidInputError, InvalidTTLError
from dropbin.infrastructure.local_blob_store import LocalBlobStore

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@given(data=st.binary(max_size=200 * 1024))
def test_blob_bytes_survive_storage(tmp_path, data):
    store = LocalBlobStore(str(tmp_path / "blobs"), chunk_size=4096)

    stored = store.put(io.BytesIO(data))

    assert stored.size == len(data)
    assert b"".join(store.get(stored.storage_key)) == data
    store.delete(stored.storage_key)


@given(
    ttl=st.sampled_from(sorted(ACCEPTED_TTLS)),
    max_views=st.integers(min_value=0, max_value=5),
    views=st.integers(min_value=0, max_value=6),
    elapsed=st.integers(min_value=0, max_value=8 * 24 * 3600),
)
def test_liveness_matches_time_and_count(ttl, max_views, views, elapsed):
    entry = Entry.new_paste(
        "x" * 22, "hello", "text", "", ACCEPTED_TTLS[ttl], max_views=max_views, now=START
    )
    for _ in range(views):
        entry = entry.with_access_recorded()
    now = START + timedelta(seconds=elapsed)

    expected = now < START + ACCEPTED_TTLS[ttl] and (max_views == 0 or views < max_views)

    assert entry.is_live(now) == expected


@given(token=st.text(max_size=8))
def test_ttl_parse_accepts_only_known_tokens(token):
    if not token.strip() or token.strip() in ACCEPTED_TTLS:
        assert TimeToLive.parse(token).token in ACCEPTED_TTLS
    else:
        with pytest.raises(InvalidTTLError):
            TimeToLive.parse(token)


@given(value=st.integers(min_value=-1000, max_value=1000))
def test_access_limit_rejects_negatives(value):
    if value < 0:
        with pytest.raises(InvalidInputError):
            parse_access_limit(value, "max_views")
    else:
        assert parse_access_limit(str(value), "max_views") == value


def test_generated_ids_are_well_formed_and_distinct():
    generator = EntryIdGenerator()
    ids = {generator.new_id() for _ in range(1000)}

    assert len(ids) == 1000
    assert all(EntryIdGenerator.is_well_formed(entry_id) for entry_id in ids)
