# core/models.py
"""
Core models: the academy (organizational unit) and its key/value settings.
"""
import logging

from django.db import models
from django.utils.text import slugify

logger = logging.getLogger(__name__)


class Academy(models.Model):
    """Organizational unit that scopes role assignments and settings."""

    name = models.CharField(max_length=255, help_text="Academy display name")
    slug = models.SlugField(unique=True, blank=True)
    contact_email = models.EmailField(blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'core_academy'
        verbose_name_plural = 'Academies'
        ordering = ['name']

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)[:50]
        super().save(*args, **kwargs)


class Setting(models.Model):
    """
    Business setting stored as text.

    A row with ``academy=None`` is the global value; an academy-specific row
    overrides it.
    """

    academy = models.ForeignKey(
        Academy,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='settings',
    )
    key = models.CharField(max_length=100)
    value = models.TextField(blank=True)
    description = models.CharField(max_length=255, blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'core_setting'
        unique_together = ['academy', 'key']
        indexes = [
            models.Index(fields=['key']),
        ]

    def __str__(self):
        scope = self.academy.name if self.academy_id else 'global'
        return f"{self.key}={self.value} ({scope})"
