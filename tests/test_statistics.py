from __future__ import annotations

import numpy as np
import pytest

from bof.statistics import IntRange, LearningStatistics, NormalEstimate, compute_statistics


def test_compute_statistics_before_and_after_sampling():
    raw_counts = np.array([20, 30, 0, 10])
    image_indices = np.array([0, 0, 0, 1, 1, 3])

    stats = compute_statistics(raw_counts, image_indices, number_of_images=4)

    assert stats.total_number_of_images == 4
    assert stats.total_number_of_descriptors == 60
    assert stats.total_number_of_descriptors_per_image_range == IntRange(0, 30)
    assert stats.number_of_descriptors_taken == 6
    assert stats.number_of_images_taken == 3
    assert stats.number_of_descriptors_taken_per_image_range == IntRange(0, 3)
    assert stats.total_number_of_descriptors_per_image.mean == pytest.approx(15.0)


def test_skipped_images_are_excluded_from_distributions():
    raw_counts = np.array([10, 10, 0, 0])
    extracted = np.array([True, True, False, False])
    image_indices = np.repeat([0, 1], 10)

    stats = compute_statistics(raw_counts, image_indices, number_of_images=4, extracted=extracted)

    assert stats.total_number_of_images == 4
    assert stats.total_number_of_descriptors_per_image_range == IntRange(10, 10)
    assert stats.number_of_descriptors_taken_per_image_range == IntRange(10, 10)
    assert stats.number_of_images_taken == 2


def test_robust_estimate_ignores_outlier():
    values = np.array([10, 11, 9, 10, 1000])

    robust = NormalEstimate.estimate(values)
    plain = NormalEstimate.estimate(values, robust=False)

    assert robust.mean == pytest.approx(10.0)
    assert robust.std == pytest.approx(1.4826)
    assert plain.mean == pytest.approx(208.0)


def test_empty_inputs_give_zero_summaries():
    assert NormalEstimate.estimate(np.array([])) == NormalEstimate(0.0, 0.0)
    assert IntRange.of(np.array([])) == IntRange(0, 0)


def test_statistics_are_read_only_and_exportable():
    stats = compute_statistics(np.array([4, 6]), np.array([0, 1, 1]), number_of_images=2)

    with pytest.raises(AttributeError):
        stats.number_of_descriptors_taken = 10

    record = stats.to_record()
    assert record["number_of_descriptors_taken"] == 3
    assert record["total_number_of_descriptors_per_image_range.max"] == 6
    assert "images=2/2" in str(stats)
    assert LearningStatistics().total_number_of_images == 0
