"""
Slack Web API 客户端单元测试（替换 requests.Session，不访问网络）
"""

import json
from types import SimpleNamespace

import pytest

from collate.interfaces import SlackApiError, TransportError
from collate.slack import SlackClient


class _Response:
    def __init__(self, status: int = 200, body=None, content: bytes = b""):
        self.status_code = status
        self.ok = 200 <= status < 300
        self.reason = "OK" if self.ok else "Server Error"
        self._body = body
        self.content = content
        self.request = None

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class _Session:
    def __init__(self, responses: list[_Response]):
        self.headers: dict[str, str] = {}
        self.responses = responses
        self.requests: list[dict] = []

    def request(self, method, url, **kwargs):
        self.requests.append({"method": method, "url": url, **kwargs})
        resp = self.responses.pop(0)
        if resp.request is None:
            resp.request = SimpleNamespace(body=kwargs.get("data"))
        return resp

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)


def _client(*responses: _Response) -> tuple[SlackClient, _Session]:
    session = _Session(list(responses))
    return SlackClient(token="xoxb-test", base_url="https://slack.test/api/", session=session), session


class TestSlackClient:
    """Web API 客户端测试"""

    def test_bearer_auth(self):
        _, session = _client()
        assert session.headers["Authorization"] == "Bearer xoxb-test"

    def test_conversations_replies_params(self):
        """测试分页参数"""
        client, session = _client(_Response(body={"ok": True, "messages": []}))
        client.conversations_replies("C1", "1.0", limit=50, cursor="abc")

        sent = session.requests[0]
        assert sent["method"] == "GET"
        assert sent["url"] == "https://slack.test/api/conversations.replies"
        assert sent["params"] == {"channel": "C1", "ts": "1.0", "limit": 50, "cursor": "abc"}

    def test_ok_false_raises(self):
        """测试 ok=false 转为 SlackApiError"""
        client, _ = _client(_Response(body={"ok": False, "error": "not_in_channel"}))
        with pytest.raises(SlackApiError) as exc_info:
            client.files_info("F1")
        assert exc_info.value.error == "not_in_channel"
        assert exc_info.value.method == "files.info"

    def test_non_2xx_raises(self):
        """测试非2xx转为 TransportError"""
        client, _ = _client(_Response(status=503))
        with pytest.raises(TransportError) as exc_info:
            client.download("https://files.test/F1")
        assert exc_info.value.status == 503

    def test_invalid_json(self):
        client, _ = _client(_Response(body=None))
        with pytest.raises(SlackApiError) as exc_info:
            client.chat_update("C1", "1.0", "hi")
        assert exc_info.value.error == "invalid_json"

    def test_upload_to_url_sends_length(self):
        """测试上传请求携带字节长度"""
        client, session = _client(_Response(status=200))
        assert client.upload_to_url("https://upload.test/F1", b"12345") == 5
        headers = session.requests[0]["headers"]
        assert headers["Content-Length"] == "5"
        assert session.requests[0]["data"] == b"12345"

    def test_upload_to_url_reports_sent_body(self):
        """测试返回值取自实际发出的请求体"""
        resp = _Response(status=200)
        resp.request = SimpleNamespace(body=b"123")
        client, _ = _client(resp)
        assert client.upload_to_url("https://upload.test/F1", b"12345") == 3

    def test_complete_upload_payload(self):
        """测试完成挂载的文件列表为JSON编码"""
        client, session = _client(_Response(body={"ok": True, "files": []}))
        client.complete_upload_external("F1", "Report", "C1", "1.0", initial_comment="ready")

        data = session.requests[0]["data"]
        assert json.loads(data["files"]) == [{"id": "F1", "title": "Report"}]
        assert data["thread_ts"] == "1.0"
        assert data["initial_comment"] == "ready"
