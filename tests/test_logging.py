from graph_adapter.logging import redact_payload


def test_download_urls_and_attachment_bytes_are_not_logged():
    params = {
        "message-id": "m1",
        "body": {
            "attachments": [{"name": "a.pdf", "contentBytes": "QUJD" * 10}],
            "@microsoft.graph.downloadUrl": "https://contoso-my.sharepoint.com/download?tempauth=x",
        },
        "Authorization": "Bearer abc",
    }

    redacted = redact_payload(params)

    assert redacted["message-id"] == "m1"
    assert redacted["Authorization"] == "***REDACTED***"
    assert redacted["body"]["@microsoft.graph.downloadUrl"] == "***REDACTED***"
    assert redacted["body"]["attachments"][0] == {"name": "a.pdf", "contentBytes": "<40 base64 chars>"}
