"""Builders for Huggy payloads and OpenAI responses used across tests."""

from unittest.mock import Mock


def make_message(
    body="olá",
    send_at="2024-03-01T10:00:00",
    sender_id="cust-1",
    sender_name="Maria",
    sender_type=None,
    customer=None,
):
    """Raw Huggy message dict; customer defaults to cust-1/Maria."""
    if customer is None:
        customer = {
            "id": "cust-1",
            "name": "Maria",
            "email": "maria@example.com",
            "mobile": "+5511999990000",
            "custom_fields": {
                "cnpj_customer": "12.345.678/0001-90",
                "certificado_customer": "A1",
                "emissor_customer": "Serasa",
            },
        }
    message = {
        "send_at": send_at,
        "body": body,
        "sender": {"id": sender_id, "name": sender_name} if sender_id is not None else None,
        "customer": customer or None,
    }
    if sender_type is not None:
        message["senderType"] = sender_type
    return message


def make_completion(content):
    """Mock OpenAI chat completion whose first choice carries `content`."""
    completion = Mock()
    completion.choices = [Mock()]
    completion.choices[0].message.content = content
    return completion
