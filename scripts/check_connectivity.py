#!/usr/bin/env python3
"""Check connectivity to the services the image ingest function uses.

Usage:
    python scripts/check_connectivity.py [IMAGE_URL]

With IMAGE_URL the vision API is asked to analyze that image; without it
only reachability of the endpoint is checked.
"""

import sys
from pathlib import Path

import requests

sys.path.insert(0, str(Path(__file__).parent.parent / "functions"))

from image_ingest.config import PROJECT_ROOT, ConfigurationError, PipelineConfig  # noqa: E402
from image_ingest.http_client import create_session  # noqa: E402
from image_ingest.vision import VisionClient  # noqa: E402


def check_blob_storage(config: PipelineConfig) -> bool:
    """Test Azure Blob Storage connection."""
    print("Testing Azure Blob Storage connection...")

    try:
        from azure.storage.blob import BlobServiceClient

        blob_service = BlobServiceClient.from_connection_string(
            config.storage_connection_string
        )
        containers = [c["name"] for c in blob_service.list_containers()]
        print("  ✓ Connected to Azure Blob Storage")
        print(f"    Containers: {containers}")
        return True

    except Exception as e:
        print(f"  ✗ Connection failed: {e}")
        return False


def check_reachable(name: str, url: str, session: requests.Session) -> bool:
    """Any HTTP answer below 500 counts as reachable."""
    print(f"\nTesting {name} at {url}...")

    try:
        response = session.get(url, timeout=10)
    except requests.RequestException as e:
        print(f"  ✗ Connection failed: {e}")
        return False

    if response.status_code >= 500:
        print(f"  ✗ Server error: {response.status_code} {response.reason}")
        return False

    print(f"  ✓ Reachable ({response.status_code} {response.reason})")
    return True


def check_analysis(config: PipelineConfig, image_url: str, session: requests.Session) -> bool:
    """Run a real analysis request against the vision API."""
    print(f"\nAnalyzing {image_url}...")

    client = VisionClient(
        config.vision_endpoint,
        config.subscription_key,
        session,
        timeout=config.http_timeout or 30,
    )
    result = client.analyze(image_url)
    if not result.is_ok:
        print(f"  ✗ Analysis failed: {result.error}")
        return False

    print(f"  ✓ Caption: {result.value.caption}")
    print(f"    Tags: {result.value.description.tags}")
    return True


def main() -> None:
    """Run all connectivity checks."""
    print("=" * 50)
    print("Image Metadata Ingest Connectivity Check")
    print("=" * 50)
    print()

    env_path = PROJECT_ROOT / ".env"
    if not env_path.exists():
        print("⚠ No .env file found")
        print("  → Copy .env.example to .env and fill in your values")
        print()

    try:
        config = PipelineConfig.from_env()
    except ConfigurationError as e:
        print(f"✗ {e}")
        sys.exit(1)

    session = create_session()
    results = [("Blob Storage", check_blob_storage(config))]

    if len(sys.argv) > 1:
        results.append(("Vision API", check_analysis(config, sys.argv[1], session)))
    else:
        results.append(("Vision API", check_reachable("Vision API", config.vision_endpoint, session)))
    results.append(("Metadata store", check_reachable("Metadata store", config.sparql_endpoint, session)))

    session.close()

    print()
    print("=" * 50)
    print("Summary")
    print("=" * 50)

    all_passed = True
    for name, passed in results:
        status = "✓ PASS" if passed else "✗ FAIL"
        print(f"  {name}: {status}")
        if not passed:
            all_passed = False

    print()
    if all_passed:
        print("All checks passed.")
    else:
        print("Some checks failed. Check the errors above.")
        sys.exit(1)


if __name__ == "__main__":
    main()
