"""
Test configuration and fixtures
"""
import sys
from pathlib import Path
from unittest.mock import Mock

# Add src to Python path so tests run without an editable install
project_root = Path(__file__).parent.parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

import pytest

from entrig.client import Entrig
from entrig.config import SdkConfig
from entrig.dispatch import InlineDispatcher
from entrig.http_client import HTTPClient
from entrig.platform import NotificationPresenter, PermissionPrompt, PushTokenProvider
from entrig.token_store import TokenStore

FCM_PARAMS_RESPONSE = {
    "data": {
        "senderId": "1234567890",
        "appId": "1:1234567890:android:abc",
        "apiKey": "transport-key",
        "projectId": "entrig-test",
    }
}


def make_backend(registration_id: str = "r1") -> Mock:
    """HTTPClient mock answering every Entrig endpoint successfully."""
    backend = Mock(spec=HTTPClient)

    def _post(endpoint, data=None, retry=False):
        if endpoint == "/fcm-params":
            return FCM_PARAMS_RESPONSE
        if endpoint == "/register":
            return {"id": registration_id}
        return {}

    backend.post.side_effect = _post
    return backend


def calls_to(backend: Mock, endpoint: str) -> list:
    """Calls the backend mock received for ``endpoint``."""
    return [c for c in backend.post.call_args_list if c.args[0] == endpoint]


@pytest.fixture
def config(tmp_path):
    return SdkConfig(
        api_key="test-api-key",
        app_id="com.example.app",
        storage_path=str(tmp_path / "entrig.db"),
    )


@pytest.fixture
def token_store(tmp_path):
    return TokenStore(tmp_path / "entrig.db")


@pytest.fixture
def backend():
    return make_backend()


@pytest.fixture
def token_provider():
    provider = Mock(spec=PushTokenProvider)
    provider.get_token.return_value = "tok-1"
    return provider


@pytest.fixture
def prompt():
    prompt = Mock(spec=PermissionPrompt)
    prompt.requires_runtime_consent.return_value = False
    prompt.is_granted.return_value = True
    return prompt


@pytest.fixture
def presenter():
    return Mock(spec=NotificationPresenter)


@pytest.fixture
def sdk(config, token_provider, prompt, presenter, backend, token_store):
    """SDK instance running both execution contexts inline."""
    return Entrig(
        config,
        token_provider,
        permission_prompt=prompt,
        presenter=presenter,
        dispatcher=InlineDispatcher(),
        http_client=backend,
        token_store=token_store,
    )


@pytest.fixture
def initialized_sdk(sdk):
    sdk.initialize()
    return sdk
