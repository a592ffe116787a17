"""BoVW vocabulary 학습 / histogram 생성 스크립트.

수행 작업 개요:
    • 이미지 수집: data/images/<class>/*.{jpg,png,...} 를 클래스별로 수집 후 Train/Test 분할
    • Vocabulary 학습: Train 이미지에서 descriptor 를 병렬 추출/샘플링 → KMeans codebook
    • Histogram 생성: Train/Test 전체 이미지를 (K,) BoVW histogram 으로 변환
    • 결과 저장: histogram(.npy), 라벨(.npy), 학습 통계(JSON), 이미지별 descriptor 수(CSV),
      일부 이미지의 histogram 막대 그래프와 descriptor 수 분포 그래프(PNG)

설정:
    config/bovw.json 이 있으면 BagOfVisualWordsConfig 로 읽고, 없으면 기본값을 사용한다.

실행:
    python src/build_vocabulary.py
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from bof.config import BagOfVisualWordsConfig, create_bag_of_visual_words
from utils.io import list_images, save_json
from utils.logger import get_logger
from utils.paths import Paths
from utils.seed import seed_everything
from utils.visualize import save_count_distribution, save_histogram

# Main Logger
logger: Optional[logging.Logger] = None


def _collect_images(image_root: Path) -> Tuple[List[Path], List[int], List[str]]:
    """클래스별 하위 폴더에서 이미지 경로와 라벨을 수집한다.

    Args:
        image_root (Path): data/images 경로. 하위 폴더명이 클래스명.

    Returns:
        Tuple[List[Path], List[int], List[str]]: 이미지 경로, 라벨 index, 클래스명 목록.
    """
    classes = sorted(p.name for p in image_root.iterdir() if p.is_dir())
    paths: List[Path] = []
    labels: List[int] = []
    for idx, cls in enumerate(classes):
        for img_path in list_images(image_root / cls):
            paths.append(img_path)
            labels.append(idx)
    return paths, labels, classes


def _load_config(paths: Paths) -> BagOfVisualWordsConfig:
    """config/bovw.json 이 있으면 읽고, 없으면 기본 설정을 반환한다."""
    config_path = paths.config_dir / "bovw.json"
    if config_path.exists():
        logger.info("Config 로드: %s", config_path)
        return BagOfVisualWordsConfig.from_json(config_path)
    logger.info("Config 파일이 없어 기본값을 사용합니다: %s", config_path)
    return BagOfVisualWordsConfig(number_of_words=200, max_descriptors_per_image=500, number_of_descriptors=100_000)


def _count_records(names: List[Path], labels: np.ndarray, hist: np.ndarray, split: str) -> pd.DataFrame:
    """이미지별 descriptor 수(= count histogram 의 합) 를 DataFrame 으로 정리한다."""
    return pd.DataFrame(
        {
            "split": split,
            "image": [str(p) for p in names],
            "label": labels,
            "descriptors": hist.sum(axis=1).astype(np.int64),
            "words_used": np.count_nonzero(hist, axis=1),
        }
    )


# ------------------------------------------------------------------
# BoVW Vocabulary Main Execute
# ------------------------------------------------------------------
if __name__ == "__main__":
    st_time = datetime.now()

    # ------------------------------------------------------------------
    # 0. 경로/로거/시드 설정
    # ------------------------------------------------------------------
    project_root = Path(os.path.join(os.path.dirname(__file__), "..")).resolve()
    paths = Paths.from_root(project_root)
    result_dir = paths.result_dir

    logger = get_logger(paths.log_dir, "bovw_logger")
    logger.info("Project Root: %s", project_root)
    logger.info("Result Root: %s", result_dir)

    config = _load_config(paths)
    logger.info("Config: %s", config.to_dict())
    seed_everything(config.seed if config.seed is not None else 2025)

    image_root = paths.data_dir / "images"
    if not image_root.exists():
        logger.warning("이미지 폴더를 찾을 수 없습니다: %s", image_root)
        raise SystemExit(1)

    # ------------------------------------------------------------------
    # 1. 이미지 수집 및 Train/Test 분할
    # ------------------------------------------------------------------
    image_paths, labels, classes = _collect_images(image_root)
    logger.info("Images=%d, Classes=%d %s", len(image_paths), len(classes), classes)

    x_train, x_test, y_train, y_test = train_test_split(
        image_paths,
        np.asarray(labels, dtype=np.int64),
        test_size=0.2,
        random_state=2025,
        stratify=np.asarray(labels, dtype=np.int64),
    )
    logger.info("Train=%d, Test=%d", len(x_train), len(x_test))

    # ------------------------------------------------------------------
    # 2. Vocabulary 학습
    # ------------------------------------------------------------------
    bovw = create_bag_of_visual_words(config)
    bovw.learn_paths(x_train)
    logger.info("Vocabulary: %s", bovw)

    stats = bovw.statistics
    save_json({"config": config.to_dict(), "statistics": stats.to_record()}, result_dir / "learning_statistics.json")

    # ------------------------------------------------------------------
    # 3. Train/Test histogram 생성 및 저장
    # ------------------------------------------------------------------
    X_train_bovw = bovw.transform_paths(x_train, dtype=np.int32)
    X_test_bovw = bovw.transform_paths(x_test, dtype=np.int32)
    logger.info("Train BoVW=%s, Test BoVW=%s", X_train_bovw.shape, X_test_bovw.shape)

    np.save(result_dir / "X_train_bovw.npy", X_train_bovw)
    np.save(result_dir / "X_test_bovw.npy", X_test_bovw)
    np.save(result_dir / "y_train.npy", y_train)
    np.save(result_dir / "y_test.npy", y_test)

    counts_df = pd.concat(
        [
            _count_records(x_train, y_train, X_train_bovw, "train"),
            _count_records(x_test, y_test, X_test_bovw, "test"),
        ],
        ignore_index=True,
    )
    counts_df.to_csv(result_dir / "descriptor_counts.csv", index=False)
    logger.info("Descriptors per image:\n%s", counts_df.groupby("split")["descriptors"].describe().to_string())

    # --- 등간격 샘플 이미지의 histogram / descriptor 수 분포 시각화 ---
    hist_dir = result_dir / "hist"
    sample_indices = sorted(set(np.linspace(0, len(x_test) - 1, num=min(10, len(x_test)), dtype=int).tolist()))
    for idx in sample_indices:
        name = f"{classes[int(y_test[idx])]}_{Path(x_test[idx]).stem}"
        save_histogram(X_test_bovw[idx], hist_dir / f"{idx:05d}_{name}.png", f"Test {name}")

    save_count_distribution(counts_df["descriptors"].to_numpy(), result_dir / "descriptor_counts.png")

    end_time = datetime.now()
    logger.info("BoVW Elapsed Time: {} Minutes".format(round((end_time - st_time).seconds / 60, 2)))
