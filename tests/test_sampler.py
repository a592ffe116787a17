from __future__ import annotations

import numpy as np
import pytest

from bof.bovw import _extract_image
from bof.errors import DimensionMismatchError, InsufficientDataError, InsufficientDescriptorsError
from bof.sampler import DescriptorSampler
from conftest import SyntheticDetector, make_images


def test_per_image_cap_is_never_exceeded(detector, images):
    sampler = DescriptorSampler(detector, max_descriptors_per_image=7, parallelism=1, seed=1)
    sampled = sampler.sample(images, _extract_image)

    per_image = np.bincount(sampled.image_indices, minlength=len(images))
    assert per_image.max() <= 7
    assert len(sampled) == 7 * len(images)
    np.testing.assert_array_equal(sampled.raw_counts, np.full(len(images), 20))


def test_per_image_subset_comes_from_source_image(detector, images):
    sampler = DescriptorSampler(detector, max_descriptors_per_image=5, parallelism=1, seed=3)
    sampled = sampler.sample(images, _extract_image)

    for row, image_index in zip(sampled.descriptors, sampled.image_indices):
        assert any(np.array_equal(row, src) for src in images[image_index])


def test_global_cap_yields_exact_count(detector, images):
    sampler = DescriptorSampler(detector, number_of_descriptors=50, max_descriptors_per_image=10, parallelism=1, seed=0)
    sampled = sampler.sample(images, _extract_image)

    assert sampled.descriptors.shape == (50, 2)
    assert sampled.image_indices.shape == (50,)


def test_global_cap_short_circuit_skips_remaining_images_sequentially(detector, detector_log, images):
    sampler = DescriptorSampler(detector, number_of_descriptors=50, max_descriptors_per_image=10, parallelism=1)
    sampled = sampler.sample(images, _extract_image)

    # 이미지당 10개 → 5장 처리 후 전역 상한 도달
    assert detector_log.detect_calls == 5
    assert sampled.extracted.tolist() == [True] * 5 + [False] * 5
    assert set(sampled.image_indices.tolist()) == {0, 1, 2, 3, 4}


def test_global_cap_unsatisfiable_fails(detector):
    images = make_images(num_images=4, per_image=20)
    sampler = DescriptorSampler(detector, number_of_descriptors=50, max_descriptors_per_image=10, parallelism=1)

    with pytest.raises(InsufficientDescriptorsError) as exc_info:
        sampler.sample(images, _extract_image)

    assert exc_info.value.requested == 50
    assert exc_info.value.available == 40
    assert isinstance(exc_info.value, InsufficientDataError)


def test_weights_length_mismatch_fails_before_detection(detector, detector_log, images):
    sampler = DescriptorSampler(detector, parallelism=1)

    with pytest.raises(DimensionMismatchError):
        sampler.sample(images, _extract_image, weights=np.ones(len(images) - 1))

    assert detector_log.detect_calls == 0


def test_image_weights_are_inherited_by_descriptors(detector, images):
    weights = np.arange(1, len(images) + 1, dtype=np.float64)
    sampler = DescriptorSampler(detector, number_of_descriptors=30, max_descriptors_per_image=10, parallelism=1, seed=5)
    sampled = sampler.sample(images, _extract_image, weights=weights)

    assert sampled.weights.shape == (30,)
    np.testing.assert_array_equal(sampled.weights, weights[sampled.image_indices])


def test_seeded_sampling_does_not_depend_on_parallelism(images):
    results = []
    for parallelism in (1, 4):
        sampler = DescriptorSampler(SyntheticDetector(), max_descriptors_per_image=6, parallelism=parallelism, seed=42)
        results.append(sampler.sample(images, _extract_image))

    np.testing.assert_array_equal(results[0].descriptors, results[1].descriptors)
    np.testing.assert_array_equal(results[0].image_indices, results[1].image_indices)


def test_parallel_sampling_pools_every_image(detector, detector_log, images):
    sampler = DescriptorSampler(detector, parallelism=3)
    sampled = sampler.sample(images, _extract_image)

    assert len(sampled) == 20 * len(images)
    np.testing.assert_array_equal(sampled.image_indices, np.repeat(np.arange(len(images)), 20))
    assert detector_log.clones == 3
    assert detector_log.closes == 3


def test_empty_images_produce_empty_pool(detector):
    images = [np.zeros((0, 2), dtype=np.float32) for _ in range(3)]
    sampled = DescriptorSampler(detector, parallelism=1).sample(images, _extract_image)

    assert sampled.descriptors.shape == (0, 2)
    assert sampled.image_indices.shape == (0,)
    assert sampled.extracted.all()
