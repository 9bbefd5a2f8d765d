"""Ingestion helpers.

Turn raw transport payloads into typed samples (pose, status, path) with
field-level sanitization. Nothing here touches the track store directly.
"""
