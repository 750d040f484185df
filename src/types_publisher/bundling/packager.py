import base64
import hashlib
import io
import tarfile
from pathlib import Path
from typing import Dict


class Packager:
    def create_tarball(self, directory: Path) -> bytes:
        """
        pack a directory into a gzipped tarball with every entry under `package/`.

        entries are added in sorted order with ownership and mtimes cleared.
        """
        if not directory.is_dir():
            raise FileNotFoundError(f"package directory {directory} does not exist")

        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
            for path in sorted(directory.rglob("*")):
                if not path.is_file():
                    continue
                arcname = f"package/{path.relative_to(directory).as_posix()}"
                info = tar.gettarinfo(str(path), arcname=arcname)
                info.uid = info.gid = 0
                info.uname = info.gname = ""
                info.mtime = 0
                with open(path, "rb") as f:
                    tar.addfile(info, f)
        return buffer.getvalue()

    def digests(self, tarball: bytes) -> Dict[str, str]:
        """shasum and integrity values the registry expects in `dist`."""
        sha512 = base64.b64encode(hashlib.sha512(tarball).digest()).decode()
        return {
            "shasum": hashlib.sha1(tarball).hexdigest(),
            "integrity": f"sha512-{sha512}",
        }
