from __future__ import annotations

from typing import List, Tuple

import cv2


def grid_keypoints(
    image_shape: Tuple[int, ...],
    patch_w: int,
    patch_h: int,
    stride: int,
) -> List[cv2.KeyPoint]:
    """
    그리드 기반 슬라이딩 윈도우의 각 패치 중심을 KeyPoint 로 생성한다.

    Args:
        image_shape (Tuple[int, ...]): 입력 이미지 shape, (H, W[, C]).
        patch_w (int): 패치 너비.
        patch_h (int): 패치 높이.
        stride (int): 슬라이딩 간격(픽셀).

    Returns:
        List[cv2.KeyPoint]: 각 패치의 중심점 좌표를 나타내는 KeyPoint 리스트.
            이미지가 패치보다 작으면 빈 리스트.

    Raises:
        ValueError: stride 또는 패치 크기가 0 이하인 경우.

    Note:
        - Dense SIFT 처럼 검출기 없이 고정 위치에서 descriptor 를 계산할 때 사용.
        - 패치보다 작은 이미지는 keypoint 0개 → 빈 히스토그램으로 이어진다.
    """
    if stride <= 0 or patch_w <= 0 or patch_h <= 0:
        raise ValueError(f"stride/패치 크기는 양수여야 합니다: stride={stride}, patch={patch_w}x{patch_h}")

    H, W = image_shape[:2]
    keypoints: List[cv2.KeyPoint] = []

    for y0 in range(0, H - patch_h + 1, stride):
        for x0 in range(0, W - patch_w + 1, stride):
            # 패치 중심 좌표 계산
            cx = x0 + patch_w / 2.0
            cy = y0 + patch_h / 2.0

            # KeyPoint는 위치(pt)와 크기(size)만 사용
            keypoints.append(
                cv2.KeyPoint(
                    float(cx),
                    float(cy),
                    float((patch_w + patch_h) / 2.0),
                )
            )

    return keypoints
