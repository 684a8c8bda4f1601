from portrelay.hooks import (
    API_VERSION,
    NewUserConnContent,
    Op,
    Request,
    Response,
    UserInfo,
    current_reqid,
    reqid_context,
)


def test_op_values_match_wire_names():
    assert Op.LOGIN.value == "Login"
    assert Op.NEW_WORK_CONN.value == "NewWorkConn"
    assert Op("NewUserConn") is Op.NEW_USER_CONN


def test_request_serialises_nested_content():
    user = UserInfo(user="alice", metas={"region": "eu"}, run_id="r1")
    content = NewUserConnContent(
        user=user, proxy_name="web", proxy_type="tcp", remote_addr="10.0.0.1:5000"
    )
    body = Request(API_VERSION, Op.NEW_USER_CONN, content).to_dict()
    assert body == {
        "version": "0.1.0",
        "op": "NewUserConn",
        "content": {
            "user": {"user": "alice", "metas": {"region": "eu"}, "run_id": "r1"},
            "proxy_name": "web",
            "proxy_type": "tcp",
            "remote_addr": "10.0.0.1:5000",
        },
    }


def test_request_passes_plain_content_through():
    body = Request(API_VERSION, "Custom", {"k": "v"}).to_dict()
    assert body["op"] == "Custom"
    assert body["content"] == {"k": "v"}


def test_response_from_dict_defaults():
    res = Response.from_dict({"reject": True, "reject_reason": "denied"})
    assert res.reject is True
    assert res.reject_reason == "denied"
    assert res.unchange is False
    assert res.content is None


def test_response_from_dict_keeps_content():
    res = Response.from_dict({"unchange": True, "content": {"proxy_name": "web"}})
    assert res.unchange is True
    assert res.content == {"proxy_name": "web"}


def test_reqid_context_sets_and_restores():
    assert current_reqid() == ""
    with reqid_context("abc"):
        assert current_reqid() == "abc"
        with reqid_context("def"):
            assert current_reqid() == "def"
        assert current_reqid() == "abc"
    assert current_reqid() == ""