"""
BoVW 설정값과 모델 팩토리.

- JSON 설정 파일(config/bovw.json 등) 또는 dict 로부터 설정을 만든다.
- create_bag_of_visual_words(): 설정 → Detector/Clustering/BagOfVisualWords 조립.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

from bof.bovw import BagOfVisualWords
from bof.clustering import create_clustering
from features.detectors import create_detector
from utils.io import load_json


@dataclass
class BagOfVisualWordsConfig:
    """
    BagOfVisualWords 구성 옵션.

    Attributes:
        number_of_words (int): 요청 시각 단어 수 K
        number_of_descriptors (int): 전역 descriptor 상한 (0 = 제한 없음)
        max_descriptors_per_image (int): 이미지별 descriptor 상한 (0 = 제한 없음)
        parallelism (Optional[int]): worker 수 (1 = 순차, None = CPU 코어 수)
        detector (str): {"sift", "orb", "grid_sift"}
        detector_params (Dict[str, Any]): Detector dataclass 에 전달할 파라미터
        clustering (str): {"kmeans", "minibatch"}
        tolerance (float): 군집화 수렴 허용 오차
        seed (Optional[int]): 샘플링/군집화 시드
    """

    number_of_words: int = 100
    number_of_descriptors: int = 0
    max_descriptors_per_image: int = 0
    parallelism: Optional[int] = None
    detector: str = "sift"
    detector_params: Dict[str, Any] = field(default_factory=dict)
    clustering: str = "kmeans"
    tolerance: float = 1e-4
    seed: Optional[int] = 2025

    def __post_init__(self) -> None:
        if self.number_of_words <= 0:
            raise ValueError(f"number_of_words 는 양수여야 합니다: {self.number_of_words}")
        if self.number_of_descriptors < 0 or self.max_descriptors_per_image < 0:
            raise ValueError(
                "number_of_descriptors / max_descriptors_per_image 는 0 이상이어야 합니다: "
                f"{self.number_of_descriptors}, {self.max_descriptors_per_image}"
            )

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "BagOfVisualWordsConfig":
        """
        dict 로부터 설정을 만든다.

        Raises:
            ValueError: 알 수 없는 key 가 포함된 경우.
        """
        known = {f.name for f in fields(BagOfVisualWordsConfig)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"알 수 없는 설정 key: {unknown}")
        return BagOfVisualWordsConfig(**data)

    @staticmethod
    def from_json(path: str | Path) -> "BagOfVisualWordsConfig":
        """
        JSON 설정 파일을 읽는다.

        Raises:
            FileNotFoundError: 파일이 없을 때.
        """
        data = load_json(path)
        if data is None:
            raise FileNotFoundError(f"설정 파일을 찾을 수 없습니다: {path}")
        return BagOfVisualWordsConfig.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def create_bag_of_visual_words(config: BagOfVisualWordsConfig) -> BagOfVisualWords:
    """
    설정값으로 BagOfVisualWords 모델을 생성한다.

    Args:
        config (BagOfVisualWordsConfig): BoVW 설정.

    Returns:
        BagOfVisualWords: 학습 전 모델.
    """
    detector = create_detector(config.detector, **config.detector_params)
    clustering = create_clustering(
        config.clustering,
        number_of_words=config.number_of_words,
        tolerance=config.tolerance,
        seed=config.seed,
    )
    return BagOfVisualWords(
        detector=detector,
        clustering=clustering,
        number_of_descriptors=config.number_of_descriptors,
        max_descriptors_per_image=config.max_descriptors_per_image,
        parallelism=config.parallelism,
        seed=config.seed,
    )
