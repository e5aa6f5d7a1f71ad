"""Daytona sandbox provisioning for hook configuration runs."""
