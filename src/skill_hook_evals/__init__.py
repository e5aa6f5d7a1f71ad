"""Sandboxed evaluation of skill-activation hooks for Claude Code."""
