"""Skill activation under different prompt-submit hooks.

Runs each test prompt through claude inside a sandbox configured with one
hook configuration, detects Skill tool calls in the captured stream-json
output and aggregates accuracy per configuration.
"""
