import pytest
from fastapi.testclient import TestClient
from doxie_upload.core.config import Settings
from doxie_upload.main import create_app

BOUNDARY = "doxie-test-boundary-7MA4YWxkTrZu0gW"


@pytest.fixture
def upload_root(tmp_path):
    """Empty directory uploads are written to."""
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def settings(upload_root):
    return Settings(ROOT=upload_root, ADDRESS="127.0.0.1", PORT=0)


@pytest.fixture
def test_client(settings):
    """Create a test client for the FastAPI app."""
    return TestClient(create_app(settings))


@pytest.fixture
def multipart_content_type():
    return f"multipart/form-data; boundary={BOUNDARY}"


@pytest.fixture
def multipart_body():
    """
    Build a multipart/form-data body from (name, filename, content, content_type) tuples.

    filename and content_type may be None to leave them out of the field headers.
    """
    def build(fields, closed=True):
        body = b""
        for name, filename, content, content_type in fields:
            disposition = f'form-data; name="{name}"'
            if filename is not None:
                disposition += f'; filename="{filename}"'
            body += f"--{BOUNDARY}\r\nContent-Disposition: {disposition}\r\n".encode()
            if content_type is not None:
                body += f"Content-Type: {content_type}\r\n".encode()
            body += b"\r\n" + content + b"\r\n"
        if closed:
            body += f"--{BOUNDARY}--\r\n".encode()
        return body

    return build
