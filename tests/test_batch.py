from __future__ import annotations

import pytest

from conftest import StubClassifier, make_frames, verdict
from frameprobe.batch import classify_all
from frameprobe.errors import RateLimitedError
from frameprobe.oracle import parse_verdict
from frameprobe.types import FrameVerdict


def test_results_follow_input_order_not_completion_order() -> None:
    frames = make_frames(6)
    # Earlier frames in each group finish last.
    delays = {0: 0.06, 1: 0.03, 2: 0.0, 3: 0.06, 4: 0.03, 5: 0.0}
    classifier = StubClassifier(
        decide=lambda f: verdict(f.index, is_artificial=f.index % 2 == 0), delays=delays
    )

    verdicts = classify_all(frames, classifier, concurrency_limit=3)

    assert [v.frame_index for v in verdicts] == [0, 1, 2, 3, 4, 5]
    assert [v.is_artificial for v in verdicts] == [True, False, True, False, True, False]


def test_concurrency_is_bounded_by_group_size() -> None:
    frames = make_frames(7)
    classifier = StubClassifier(delays={i: 0.02 for i in range(7)})
    groups = []

    verdicts = classify_all(
        frames, classifier, concurrency_limit=3, on_group=lambda done, total: groups.append((done, total))
    )

    assert len(verdicts) == 7
    assert classifier.max_in_flight <= 3
    assert groups == [(3, 7), (6, 7), (7, 7)]


def test_transport_failure_aborts_batch() -> None:
    frames = make_frames(6)

    def decide(frame):
        if frame.index == 4:
            raise RateLimitedError()
        return verdict(frame.index)

    classifier = StubClassifier(decide=decide)
    with pytest.raises(RateLimitedError):
        classify_all(frames, classifier, concurrency_limit=3)
    # The failing group is the last one started.
    assert sorted(classifier.calls) == [0, 1, 2, 3, 4, 5]


def test_malformed_reply_does_not_abort_batch() -> None:
    frames = make_frames(4)
    replies = {2: "not json at all"}
    classifier = StubClassifier(
        decide=lambda f: parse_verdict(
            replies.get(f.index, '{"isArtificial": true, "confidence": 0.9}'), f.index
        )
    )

    verdicts = classify_all(frames, classifier)

    assert len(verdicts) == 4
    assert verdicts[2] == FrameVerdict.neutral(2)
    assert all(v.is_artificial for i, v in enumerate(verdicts) if i != 2)


def test_misindexed_verdict_is_rekeyed() -> None:
    frames = make_frames(2)
    classifier = StubClassifier(decide=lambda f: verdict(99))
    verdicts = classify_all(frames, classifier)
    assert [v.frame_index for v in verdicts] == [0, 1]


def test_invalid_concurrency_limit() -> None:
    with pytest.raises(ValueError):
        classify_all(make_frames(1), StubClassifier(), concurrency_limit=0)


def test_empty_frames() -> None:
    assert classify_all([], StubClassifier()) == []
