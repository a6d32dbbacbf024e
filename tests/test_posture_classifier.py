import typing

import pytest

from Posture_Engine.core.posture_classifier import (
    ISSUE_NECK, ISSUE_SHOULDER, ISSUE_SPINE, PostureStatus, Snapshot, evaluate_posture, get_thresholds,
    posture_score,
)
from Posture_Engine.core.spatial_metrics import PostureMetrics
from Posture_Engine.core.wellness_estimator import WellnessMetrics


def metrics(spine=0.0, neck=0.0, shoulder=0.0):
    return PostureMetrics(spine_angle=spine, neck_tilt=neck, shoulder_tilt=shoulder, confidence=0.9)


def test_good_posture():
    result = evaluate_posture(metrics(5, 5, 2))
    assert result.status == PostureStatus.GOOD
    assert result.score == 100
    assert result.issues == ()
    assert not result.needs_correction


def test_bad_spine():
    result = evaluate_posture(metrics(25, 5, 2))
    assert result.status == PostureStatus.BAD
    assert result.score == 100 - (25 - 8) * 4
    assert result.issues == (ISSUE_SPINE,)


def test_warning_between_thresholds():
    result = evaluate_posture(metrics(spine=15))
    assert result.status == PostureStatus.WARNING
    assert result.issues == (ISSUE_SPINE,)


def test_thresholds_are_strict():
    assert evaluate_posture(metrics(12, 10, 6)).status == PostureStatus.GOOD
    assert evaluate_posture(metrics(20, 0, 0)).status == PostureStatus.WARNING
    assert evaluate_posture(metrics(20.01, 0, 0)).status == PostureStatus.BAD


def test_issues_keep_fixed_order():
    result = evaluate_posture(metrics(15, 12, 7))
    assert result.issues == (ISSUE_SPINE, ISSUE_NECK, ISSUE_SHOULDER)
    assert result.status == PostureStatus.WARNING


@pytest.mark.parametrize("values", [(0, 19, 0), (0, 0, 13), (21, 0, 0), (30, 30, 30)])
def test_bad_when_any_metric_exceeds_bad(values):
    assert evaluate_posture(metrics(*values)).status == PostureStatus.BAD


def test_score_floored_at_zero():
    assert evaluate_posture(metrics(90, 90, 90)).score == 0


def test_score_rounds_half_up():
    # penalty 4 * 0.125 = 0.5
    assert posture_score(metrics(spine=8.125)) == 100
    # penalty 4 * 0.375 = 1.5 -> 98.5 -> 99
    assert posture_score(metrics(spine=8.375)) == 99


@pytest.mark.parametrize("field", ["spine", "neck", "shoulder"])
def test_score_non_increasing_per_metric(field):
    previous = 101
    for angle in range(0, 91):
        score = evaluate_posture(metrics(**{field: float(angle)})).score
        assert 0 <= score <= 100
        assert score <= previous
        previous = score


def test_classifier_is_pure():
    m = metrics(13.3, 11.1, 6.6)
    results = {evaluate_posture(m) for _ in range(20)}
    assert len(results) == 1


def test_threshold_table():
    table = get_thresholds()
    assert table['spine'] == {'warn': 12.0, 'bad': 20.0}
    assert table['neck'] == {'warn': 10.0, 'bad': 18.0}
    assert table['shoulder'] == {'warn': 6.0, 'bad': 12.0}


def test_snapshot_wellness_is_typed():
    hints = typing.get_type_hints(Snapshot)
    assert hints['wellness'] == typing.Optional[WellnessMetrics]
