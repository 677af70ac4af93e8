#!/usr/bin/env python
"""Smoke test script to verify end-to-end functionality against a running API."""
import os
import requests
import sys
from pathlib import Path

API_BASE_URL = os.getenv("FRAMEPROBE_API_URL", "http://localhost:8000")
AUTH_TOKEN = os.getenv("API_AUTH_TOKEN", "dev-token")

def create_test_video():
    """Create a simple 4 second test video file."""
    import cv2
    import numpy as np

    test_video_path = Path("sample_test.mp4")
    if test_video_path.exists():
        return str(test_video_path)

    fourcc = cv2.VideoWriter_fourcc(*'mp4v')
    out = cv2.VideoWriter(str(test_video_path), fourcc, 30.0, (128, 128))

    for i in range(120):
        frame = np.full((128, 128, 3), 40 + i, dtype=np.uint8)
        cv2.putText(frame, f"Frame {i}", (10, 64),
                   cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1)
        out.write(frame)

    out.release()
    return str(test_video_path)


def main():
    print("FrameProbe Smoke Test")
    print("=" * 50)

    print("\n1. Checking health...")
    response = requests.get(f"{API_BASE_URL}/health", timeout=10)
    if response.status_code != 200:
        print(f"   ERROR: Health check failed: {response.status_code}")
        sys.exit(1)
    print(f"   {response.json()}")

    print("\n2. Creating test video...")
    video_path = create_test_video()
    print(f"   Created: {video_path}")

    print("\n3. Uploading video for analysis...")
    headers = {"Authorization": f"Bearer {AUTH_TOKEN}"}
    with open(video_path, 'rb') as f:
        files = {'video': ('test.mp4', f, 'video/mp4')}
        response = requests.post(
            f"{API_BASE_URL}/analyze",
            files=files,
            headers=headers,
            timeout=300,
        )

    if response.status_code != 200:
        print(f"   ERROR: Analysis failed: {response.status_code}")
        print(f"   Response: {response.text}")
        sys.exit(1)

    result = response.json()
    print("\n4. Analysis completed!")
    print(f"   Verdict: {result.get('verdict', 'N/A')}")
    print(f"   Confidence: {result.get('confidence', 'N/A')}")
    print(f"   Frames analyzed: {result.get('frames_analyzed', 'N/A')}")
    print(f"   Processing time: {result.get('processing_time', 'N/A')}s")

    if result.get('frames_analyzed') != len(result.get('frame_verdicts', [])):
        print("   ERROR: frame verdict count does not match frames analyzed")
        sys.exit(1)

    print("   ✓ Smoke test passed!")
    sys.exit(0)


if __name__ == "__main__":
    main()
