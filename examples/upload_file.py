"""Stream a line of text into a file inside a running container."""

from __future__ import annotations

import io
import os

from container_upload import ContainerUploadError, UploadClient

BASE_URL = os.getenv("CONTAINER_UPLOAD_URL", "http://localhost:4243")
CONTAINER_ID = os.getenv("CONTAINER_UPLOAD_CONTAINER", "c0111a111e")
TARGET_PATH = os.getenv("CONTAINER_UPLOAD_PATH", "/var/log/example.txt")


def main() -> None:
    client = UploadClient(base_url=BASE_URL, log_level="debug")
    try:
        stream = client.open(CONTAINER_ID, TARGET_PATH)
    except ContainerUploadError as exc:
        print(f"Upload to {CONTAINER_ID}:{TARGET_PATH} failed: {exc}")
        raise SystemExit(1) from exc

    with io.TextIOWrapper(io.BufferedWriter(stream), encoding="utf-8") as writer:
        writer.write("Mabel and Dipper!\n")
    print(f"Wrote {stream.bytes_written} bytes to {CONTAINER_ID}:{TARGET_PATH}")


if __name__ == "__main__":
    main()
