"""
Match Models

Matches, their streaming links, and the viewer activity recorded against them.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone

from apps.player.state import ACCESS_WINDOW, is_playback_authorized


class Match(models.Model):
    """A scheduled or live sports match"""

    class Status(models.TextChoices):
        UPCOMING = 'UPCOMING', 'Upcoming'
        LIVE = 'LIVE', 'Live'
        FINISHED = 'FINISHED', 'Finished'

    title = models.CharField(max_length=255)
    home_team = models.CharField(max_length=255)
    away_team = models.CharField(max_length=255)
    home_team_logo = models.URLField(blank=True)
    away_team_logo = models.URLField(blank=True)
    league = models.CharField(max_length=255, blank=True, db_index=True)
    league_logo = models.URLField(blank=True)
    thumbnail = models.URLField(blank=True)
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.UPCOMING,
        db_index=True,
    )
    match_date = models.DateTimeField()
    end_time = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['match_date']
        verbose_name_plural = 'Matches'

    def __str__(self):
        return self.title

    def access_opens_at(self):
        return self.match_date - ACCESS_WINDOW

    def is_playback_authorized(self, now=None):
        """Live matches always play; others once the access window has opened"""
        return is_playback_authorized(self.status, self.match_date, now or timezone.now())

    def active_links(self):
        """
        Active streaming links, most viewed first.

        Filters in Python so a prefetch_related('streaming_links') cache is
        reused instead of issuing one query per match.
        """
        links = [link for link in self.streaming_links.all() if link.is_active]
        links.sort(key=lambda link: (-link.views, link.id))
        return links


class StreamingLink(models.Model):
    """One playable source for a match"""

    class LinkType(models.TextChoices):
        HLS = 'HLS', 'HLS'
        M3U8 = 'M3U8', 'M3U8'
        DIRECT = 'DIRECT', 'Direct video'
        IFRAME = 'IFRAME', 'Iframe embed'
        YOUTUBE = 'YOUTUBE', 'YouTube'
        VIMEO = 'VIMEO', 'Vimeo'

    match = models.ForeignKey(Match, on_delete=models.CASCADE, related_name='streaming_links')
    url = models.URLField(max_length=2048)
    type = models.CharField(max_length=10, choices=LinkType.choices, default=LinkType.HLS)
    quality = models.CharField(max_length=32, blank=True, default='HD')
    views = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-views', 'id']

    def __str__(self):
        return f"{self.match} [{self.type} {self.quality}]"


class StreamReport(models.Model):
    """A viewer report that a match stream is broken"""

    class Status(models.TextChoices):
        PENDING = 'PENDING', 'Pending'
        RESOLVED = 'RESOLVED', 'Resolved'
        DISMISSED = 'DISMISSED', 'Dismissed'

    match = models.ForeignKey(Match, on_delete=models.CASCADE, related_name='reports')
    link = models.ForeignKey(
        StreamingLink,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reports',
    )
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='stream_reports')
    reason = models.CharField(max_length=500)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']


class WatchHistory(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='watch_history')
    match = models.ForeignKey(Match, on_delete=models.CASCADE, related_name='watch_history')
    watched_at = models.DateTimeField(default=timezone.now)

    class Meta:
        unique_together = ('user', 'match')
        ordering = ['-watched_at']
