import io
import tarfile
from pathlib import Path


def pack_directory(files_dir: str) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        root = Path(files_dir)
        for path in sorted(root.rglob("*")):
            if path.is_file():
                tar.add(str(path), arcname=path.relative_to(root).as_posix())
    return buffer.getvalue()


def unpack_to_directory(data: bytes, dest_dir: str) -> None:
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
        tar.extractall(dest_dir, filter="data")
