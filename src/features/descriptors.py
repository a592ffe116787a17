from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from utils.io import to_gray


def compute_keypoint_descriptors(
    extractor: Any,
    image: np.ndarray,
    descriptor_size: int,
    keypoints: Optional[Sequence[cv2.KeyPoint]] = None,
) -> Tuple[List[cv2.KeyPoint], np.ndarray]:
    """
    OpenCV Feature2D(SIFT/ORB 등)로 KeyPoint 와 디스크립터를 계산한다.

    Args:
        extractor: cv2.SIFT / cv2.ORB 등 detectAndCompute/compute 를 제공하는 객체.
        image (np.ndarray): 입력 이미지(BGR 또는 Gray).
        descriptor_size (int): 디스크립터 차원. 결과가 없을 때 (0, D) 배열 생성에 사용.
        keypoints (Optional[Sequence[cv2.KeyPoint]]):
            None이면 extractor 가 직접 검출, 주어지면 해당 위치에서만 계산.

    Returns:
        Tuple[List[cv2.KeyPoint], np.ndarray]:
            - 사용된 실제 KeyPoint 리스트(필터링 후).
            - 디스크립터 행렬(N, D), float32.

    Notes:
        - OpenCV는 특징점이 없으면 descriptor 로 None 을 반환하므로 (0, D) 로 맞춘다.
        - ORB 의 uint8 binary descriptor 도 KMeans 입력을 위해 float32 로 변환.
    """
    gray = to_gray(image)
    if keypoints is None:
        kps, desc = extractor.detectAndCompute(gray, None)
    elif len(keypoints) == 0:
        kps, desc = [], None
    else:
        kps, desc = extractor.compute(gray, list(keypoints))

    kps = list(kps) if kps is not None else []
    if desc is None or len(kps) == 0:
        return [], np.zeros((0, descriptor_size), dtype=np.float32)
    return kps, desc.astype(np.float32)
