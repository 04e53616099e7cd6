"""
Notification template registry
Static Turkish templates keyed by notification type, loaded from YAML
"""

import os
import re
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

from src.models.notification import NotificationTemplate

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


def interpolate(template: str, data: Optional[Dict[str, Any]] = None) -> str:
    """
    Replace {{key}} placeholders with values from data

    Keys that are missing from data are left verbatim.
    """
    if not data:
        return template

    def _replace(match: "re.Match[str]") -> str:
        key = match.group(1)
        value = data.get(key)
        return str(value) if value is not None else match.group(0)

    return _PLACEHOLDER.sub(_replace, template)


class TemplateRegistry:
    """Loads templates from config/notification_templates.yaml"""

    def __init__(self, templates_path: Optional[str] = None):
        if templates_path is None:
            templates_path = os.getenv(
                "NOTIFICATION_TEMPLATES_PATH",
                str(Path(__file__).parent.parent.parent / "config" / "notification_templates.yaml")
            )
        self.templates_path = templates_path
        self.templates: Dict[str, NotificationTemplate] = {}
        self.version: str = "1.0.0"
        self._load()

    @classmethod
    def from_dict(cls, templates: Dict[str, Dict[str, Any]]) -> "TemplateRegistry":
        registry = cls.__new__(cls)
        registry.templates_path = None
        registry.version = "1.0.0"
        registry.templates = {
            key: NotificationTemplate(**value) for key, value in templates.items()
        }
        return registry

    def _load(self) -> None:
        try:
            with open(self.templates_path, 'r', encoding='utf-8') as f:
                raw = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            raise FileNotFoundError(f"Notification templates file not found: {e}")
        except yaml.YAMLError as e:
            raise ValueError(f"Error parsing notification templates YAML: {e}")

        self.version = raw.get('version', '1.0.0')
        self.templates = {
            key: NotificationTemplate(**value)
            for key, value in (raw.get('templates') or {}).items()
        }

    def get(self, notification_type: str) -> Optional[NotificationTemplate]:
        key = getattr(notification_type, "value", notification_type)
        return self.templates.get(key)

    def render(self, notification_type: str, data: Optional[Dict[str, Any]] = None) -> Optional[NotificationTemplate]:
        """Return the template with title, message and link interpolated, or None if unknown"""
        template = self.get(notification_type)
        if template is None:
            return None
        return NotificationTemplate(
            title=interpolate(template.title, data),
            message=interpolate(template.message, data),
            icon=template.icon,
            link=interpolate(template.link, data) if template.link else None,
        )

    def default_icon(self, notification_type: str) -> str:
        template = self.get(notification_type)
        return template.icon if template and template.icon else "🔔"
