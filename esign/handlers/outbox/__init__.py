"""Outbox relay handlers"""
