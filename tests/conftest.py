import os
import sys
import tempfile
from pathlib import Path

# Configure the environment before the package loads its global config
_test_tmp_dir = tempfile.mkdtemp(prefix="bizchat_test_")
os.environ["BIZCHAT_STORAGE_DIR"] = _test_tmp_dir
os.environ["GEMINI_API_KEY"] = ""
os.environ["API_KEY"] = ""
os.environ.pop("ADMIN_PASSPHRASE", None)
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import pytest  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from bizchat.models.core import GroundingLink  # noqa: E402
from bizchat.services.chat_app import ChatApplication  # noqa: E402
from bizchat.services.persisted_store import MemoryBackend, PersistedStore  # noqa: E402
from bizchat.services.response_client import ResponseClient  # noqa: E402
from bizchat.utils.config import GeminiConfig  # noqa: E402
from bizchat.utils.gemini_llm import GeminiLLMError  # noqa: E402

ADMIN_PASSPHRASE = "letmein-admin"


class FakeLLM:
    """Stands in for GeminiLLM and records every call."""

    def __init__(self, text="Answer", links=(), error=None):
        self.text = text
        self.links = list(links)
        self.error = error
        self.calls = []
        self.api_keys = []

    def factory(self, api_key):
        self.api_keys.append(api_key)
        return self

    def generate_response(self, model, contents, system_instruction, temperature=None, use_search=False):
        self.calls.append({
            "model": model,
            "contents": contents,
            "system_instruction": system_instruction,
            "temperature": temperature,
            "use_search": use_search,
        })
        if self.error is not None:
            raise GeminiLLMError(self.error)
        return self.text, self.links


def make_gemini_config(api_key="test-key"):
    return GeminiConfig(api_key=api_key,
                        flash_model="gemini-3-flash-preview",
                        pro_model="gemini-3-pro-preview",
                        temperature=0.1)


@pytest.fixture
def fake_llm():
    return FakeLLM(text="**Done** see `form-7`",
                   links=[GroundingLink(uri="https://example.com/policy", title="Policy")])


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend):
    return PersistedStore(backend=backend)


@pytest.fixture
def client(fake_llm):
    return ResponseClient(config=make_gemini_config(), llm_factory=fake_llm.factory)


@pytest.fixture
def app(store, client):
    return ChatApplication(store=store, client=client, admin_passphrase=ADMIN_PASSPHRASE)


@pytest.fixture
def logged_in_app(app):
    app.login("Kim Minji", "HB1024")
    return app


@pytest.fixture
def admin_app(logged_in_app):
    logged_in_app.elevate_admin(ADMIN_PASSPHRASE)
    return logged_in_app
