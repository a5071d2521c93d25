"""
Lambda Handlers for E-Signature Platform

サーバレス構成のエントリポイント:
- Outbox Relay (EventBridge Scheduler → EventBridge)
- Outbox Stream Relay (DynamoDB Stream → EventBridge)
"""
