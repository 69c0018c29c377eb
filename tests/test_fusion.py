import uuid

import pytest

from searchhub.repositories.types import LexicalHit, SearchCandidate
from searchhub.services.fusion import fuse


def lexical(document_id, score=0.5):
    return LexicalHit(document_id=document_id, title="t", snippet=None, score=score)


def semantic(document_id, distance=0.2, idx=0):
    return SearchCandidate(document_id=document_id, idx=idx, content="c", distance=distance)


def test_each_document_appears_once():
    a, b = uuid.uuid4(), uuid.uuid4()

    hits = fuse([lexical(a), lexical(a), lexical(b)], [semantic(a), semantic(b)])

    assert sorted(h.document_id for h in hits) == sorted([a, b])


def test_repeated_document_is_credited_at_its_first_position():
    a, b = uuid.uuid4(), uuid.uuid4()

    hits = {h.document_id: h for h in fuse([lexical(a), lexical(a), lexical(b)], [])}

    assert hits[a].score == pytest.approx(1 / 61)
    assert hits[b].score == pytest.approx(1 / 62)


def test_document_in_both_lists_outranks_single_list_hits():
    a, b, c = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()

    hits = fuse([lexical(b), lexical(a)], [semantic(c), semantic(a)])

    assert hits[0].document_id == a
    assert hits[0].score == pytest.approx(2 / 62)
    assert hits[0].lexical is not None and hits[0].semantic is not None


def test_scores_are_monotonically_non_increasing():
    ids = [uuid.uuid4() for _ in range(6)]

    hits = fuse([lexical(i) for i in ids[:4]], [semantic(i) for i in reversed(ids[2:])])

    scores = [h.score for h in hits]
    assert scores == sorted(scores, reverse=True)


def test_equal_scores_prefer_higher_similarity():
    lexical_only, semantic_only = uuid.uuid4(), uuid.uuid4()

    hits = fuse([lexical(lexical_only)], [semantic(semantic_only, distance=0.1)])

    assert hits[0].score == hits[1].score
    assert [h.document_id for h in hits] == [semantic_only, lexical_only]


def test_channel_weights_scale_contributions():
    a, b = uuid.uuid4(), uuid.uuid4()

    hits = fuse([lexical(a)], [semantic(b)], semantic_weight=2.0)

    assert [h.document_id for h in hits] == [b, a]
    assert hits[0].score == pytest.approx(2 / 61)


def test_empty_inputs_fuse_to_nothing():
    assert fuse([], []) == []


def test_k_must_be_positive():
    with pytest.raises(ValueError):
        fuse([], [], k=0)
