from photowalk.utils.response import success_response, error_response


def test_success_response_with_payload():
    result = success_response(walks=[])
    assert result == {"success": True, "walks": []}


def test_success_response_with_message():
    result = success_response(message="散歩データを記録しました", walk={"id": "w-1"})
    assert result == {"success": True, "walk": {"id": "w-1"}, "message": "散歩データを記録しました"}


def test_error_response():
    result = error_response("ルートを取得できませんでした")
    assert result == {"success": False, "error": "ルートを取得できませんでした"}


def test_error_response_with_payload():
    result = error_response("too big", message="too big")
    assert result == {"success": False, "error": "too big", "message": "too big"}
