"""
Matches Admin Interface
"""

from django.contrib import admin

from .models import Match, StreamingLink, StreamReport


class StreamingLinkInline(admin.TabularInline):
    model = StreamingLink
    extra = 1
    fields = ['url', 'type', 'quality', 'views', 'is_active']
    readonly_fields = ['views']


@admin.register(Match)
class MatchAdmin(admin.ModelAdmin):
    list_display = ['title', 'league', 'status', 'match_date', 'created_at']
    list_filter = ['status', 'league']
    search_fields = ['title', 'home_team', 'away_team', 'league']
    inlines = [StreamingLinkInline]
    actions = ['mark_live', 'mark_finished']

    def mark_live(self, request, queryset):
        updated = queryset.update(status=Match.Status.LIVE)
        self.message_user(request, f"{updated} match(es) marked live")
    mark_live.short_description = "Mark selected matches live"

    def mark_finished(self, request, queryset):
        updated = queryset.update(status=Match.Status.FINISHED)
        self.message_user(request, f"{updated} match(es) marked finished")
    mark_finished.short_description = "Mark selected matches finished"


@admin.register(StreamReport)
class StreamReportAdmin(admin.ModelAdmin):
    list_display = ['match', 'link', 'user', 'status', 'created_at']
    list_filter = ['status']
    search_fields = ['reason', 'match__title']
    readonly_fields = ['created_at']
