"""PushDesk: push-token registry and admin test-notification service."""
