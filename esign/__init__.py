"""
esign - Electronic Signature Platform Core

Envelope / Party / Document / Consent のドメインと、
Outbox・Idempotency・Rate Limit による信頼性レイヤーを提供する。
"""

__version__ = "0.1.0"
