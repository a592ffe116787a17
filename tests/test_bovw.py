from __future__ import annotations

import cv2
import numpy as np
import pytest

from bof.bovw import BagOfVisualWords
from bof.clustering import KMeansClustering
from bof.errors import DimensionMismatchError, InsufficientDataError, NotFittedError
from conftest import CountingClustering, SyntheticDetector, make_images
from features.detectors import GridSIFTDetector
from utils.io import load_color


@pytest.fixture
def model(detector, clustering, images) -> BagOfVisualWords:
    return BagOfVisualWords(detector, clustering, parallelism=1, seed=0).learn(images)


# ---------------------------------------------------------------------------
# Learn
# ---------------------------------------------------------------------------


def test_capped_learning_scenario(detector, clustering, images):
    bovw = BagOfVisualWords(detector, clustering, number_of_descriptors=50, max_descriptors_per_image=10, seed=7)

    assert bovw.learn(images) is bovw
    assert bovw.number_of_words == 4
    assert bovw.number_of_outputs == 4
    assert bovw.statistics.number_of_descriptors_taken == 50
    assert bovw.statistics.total_number_of_images == 10
    assert clustering.calls == 1


def test_too_many_words_fails_before_clustering(detector, images):
    clustering = CountingClustering(number_of_words=60, seed=0)
    bovw = BagOfVisualWords(detector, clustering, number_of_descriptors=50, max_descriptors_per_image=10, parallelism=1)

    with pytest.raises(InsufficientDataError):
        bovw.learn(images)

    assert clustering.calls == 0
    assert bovw.number_of_words == 0


def test_weights_mismatch_fails_before_detection(detector, detector_log, clustering):
    bovw = BagOfVisualWords(detector, clustering, parallelism=2)

    with pytest.raises(DimensionMismatchError):
        bovw.learn(make_images(num_images=5), weights=np.ones(4))

    assert detector_log.detect_calls == 0
    assert clustering.calls == 0


def test_learn_with_image_weights(detector, clustering, images):
    bovw = BagOfVisualWords(detector, clustering, parallelism=1).learn(images, weights=np.linspace(0.5, 2.0, len(images)))
    assert bovw.number_of_words == 4


def test_learn_from_descriptor_array(detector, detector_log, clustering, images):
    descriptors = np.vstack(images)
    bovw = BagOfVisualWords(detector, clustering).learn(descriptors)

    assert detector_log.detect_calls == 0
    assert bovw.number_of_words == 4
    assert bovw.statistics.total_number_of_descriptors == 200
    assert bovw.statistics.number_of_descriptors_taken == 200


def test_learn_from_list_of_descriptor_vectors(clustering, images):
    bovw = BagOfVisualWords(GridSIFTDetector(), clustering).learn(list(np.vstack(images)))

    assert bovw.number_of_words == 4
    assert bovw.statistics.number_of_descriptors_taken == 200


def test_learn_from_descriptor_array_checks_weights(detector, clustering):
    with pytest.raises(DimensionMismatchError):
        BagOfVisualWords(detector, clustering).learn(np.zeros((10, 2)), weights=np.ones(9))


def test_learn_requires_more_descriptors_than_words(detector, clustering):
    with pytest.raises(InsufficientDataError):
        BagOfVisualWords(detector, clustering).learn(np.zeros((4, 2), dtype=np.float32))
    assert clustering.calls == 0


def test_statistics_are_replaced_on_each_learn(detector, clustering, images):
    bovw = BagOfVisualWords(detector, clustering, max_descriptors_per_image=5, parallelism=1)
    bovw.learn(images)
    first = bovw.statistics
    bovw.learn(images[:6])

    assert first.total_number_of_images == 10
    assert bovw.statistics.total_number_of_images == 6
    assert bovw.statistics.number_of_descriptors_taken == 30


def test_mixed_input_types_are_rejected(detector, clustering, images):
    with pytest.raises(TypeError):
        BagOfVisualWords(detector, clustering).learn([images[0], "image.png"])


# ---------------------------------------------------------------------------
# Transform
# ---------------------------------------------------------------------------


def test_histogram_counts_every_descriptor(model, images):
    hist = model.transform(images[0])

    assert hist.shape == (model.number_of_words,)
    assert hist.sum() == 20


def test_zero_keypoint_image_gives_zero_histogram(model):
    hist = model.transform(np.zeros((0, 2), dtype=np.float32))
    np.testing.assert_array_equal(hist, np.zeros(model.number_of_words))


def test_histogram_matches_codebook_assignment(model, images):
    ids = model.codebook.decide(images[3])
    hist = model.transform_descriptors(images[3], dtype=np.int32)

    np.testing.assert_array_equal(hist, np.bincount(ids, minlength=model.number_of_words))


def test_codebook_distances_agree_with_assignment(model, images):
    distances = model.codebook.distances(images[2])

    assert distances.shape == (len(images[2]), model.number_of_words)
    np.testing.assert_array_equal(distances.argmin(axis=1), model.codebook.decide(images[2]))


def test_transform_is_idempotent_and_keeps_codebook(model, images):
    centroids = model.codebook.centroids

    first = model.transform(images[1])
    second = model.transform(images[1])

    np.testing.assert_array_equal(first, second)
    np.testing.assert_array_equal(model.codebook.centroids, centroids)


def test_batch_transform_matches_single_transforms(detector, clustering, images):
    bovw = BagOfVisualWords(detector, clustering, parallelism=3, seed=0).learn(images)

    batch = bovw.transform(images, dtype=np.int32)
    singles = np.vstack([bovw.transform_descriptors(img, dtype=np.int32) for img in images])

    assert batch.shape == (len(images), bovw.number_of_words)
    assert batch.dtype == np.int32
    np.testing.assert_array_equal(batch, singles)
    np.testing.assert_array_equal(batch.sum(axis=1), np.full(len(images), 20))


def test_batch_transform_uses_clone_per_worker(detector_log, clustering, images):
    bovw = BagOfVisualWords(SyntheticDetector(log=detector_log), clustering, parallelism=1).learn(images)
    assert detector_log.clones == 0

    bovw.parallelism = 2
    bovw.transform_images(images)
    assert detector_log.clones == detector_log.closes == 2


def test_worker_error_aborts_batch(clustering, images):
    failing = SyntheticDetector(fail_on_size=3)
    bovw = BagOfVisualWords(failing, clustering, parallelism=2).learn(images)

    with pytest.raises(RuntimeError):
        bovw.transform_images(images + [np.zeros((3, 2), dtype=np.float32)])


def test_transform_before_learn_fails(detector, clustering, images):
    with pytest.raises(NotFittedError):
        BagOfVisualWords(detector, clustering).transform(images[0])


def test_derived_properties_are_read_only(model):
    assert model.number_of_inputs == -1
    with pytest.raises(AttributeError):
        model.number_of_inputs = 3
    with pytest.raises(AttributeError):
        model.number_of_outputs = 3
    with pytest.raises(AttributeError):
        model.number_of_words = 3


# ---------------------------------------------------------------------------
# OpenCV 이미지 입력 (경로 / 인코딩 버퍼)
# ---------------------------------------------------------------------------


@pytest.fixture
def image_files(tmp_path):
    rng = np.random.default_rng(2025)
    paths = []
    for i in range(6):
        img = cv2.GaussianBlur(rng.integers(0, 256, size=(64, 64, 3), dtype=np.uint8), (3, 3), 0)
        path = tmp_path / f"img_{i}.png"
        cv2.imwrite(str(path), img)
        paths.append(path)
    return paths


def test_learn_and_transform_image_paths(image_files):
    detector = GridSIFTDetector(patch_hw=16, stride=8)
    bovw = BagOfVisualWords(detector, KMeansClustering(number_of_words=5, n_init=1, seed=0), parallelism=2)

    bovw.learn_paths(image_files)
    hist = bovw.transform_paths(image_files, dtype=np.int32)

    assert hist.shape == (len(image_files), 5)
    expected = [len(detector.detect(load_color(p))[0]) for p in image_files]
    np.testing.assert_array_equal(hist.sum(axis=1), expected)
    np.testing.assert_array_equal(bovw.transform(str(image_files[0]), dtype=np.int32), hist[0])


def test_learn_from_encoded_buffers(image_files):
    buffers = [p.read_bytes() for p in image_files]
    bovw = BagOfVisualWords(
        GridSIFTDetector(patch_hw=16, stride=8),
        KMeansClustering(number_of_words=5, n_init=1, seed=0),
        max_descriptors_per_image=20,
        parallelism=1,
    )

    bovw.learn(buffers)

    assert bovw.number_of_words == 5
    assert bovw.statistics.number_of_descriptors_taken == 20 * len(buffers)
    assert bovw.transform(buffers[0]).shape == (5,)


def test_missing_image_path_propagates(tmp_path, image_files):
    bovw = BagOfVisualWords(GridSIFTDetector(patch_hw=16, stride=8), KMeansClustering(number_of_words=5, n_init=1))

    with pytest.raises(FileNotFoundError):
        bovw.learn_paths(list(image_files) + [tmp_path / "missing.png"])
