"""
Match Serializers
"""

from rest_framework import serializers

from apps.player.sources import EMBED_KINDS, SourceKind, source_from_link
from apps.proxy.hls_proxy.rewriter import build_proxy_url

from .models import Match, StreamingLink, StreamReport


class StreamingLinkSerializer(serializers.ModelSerializer):
    """Streaming link with its playback kind and proxied URL"""

    kind = serializers.SerializerMethodField()
    embed = serializers.SerializerMethodField()
    proxy_url = serializers.SerializerMethodField()

    class Meta:
        model = StreamingLink
        fields = ['id', 'url', 'type', 'quality', 'views', 'kind', 'embed', 'proxy_url']

    def get_kind(self, obj):
        return source_from_link(obj).kind.value

    def get_embed(self, obj):
        return source_from_link(obj).kind in EMBED_KINDS

    def get_proxy_url(self, obj):
        """Manifest proxy URL for HLS links, None for everything else"""
        endpoint = self.context.get('proxy_endpoint')
        if not endpoint or source_from_link(obj).kind != SourceKind.HLS:
            return None
        return build_proxy_url(endpoint, obj.url)


class MatchListSerializer(serializers.ModelSerializer):
    streaming_links = serializers.SerializerMethodField()

    class Meta:
        model = Match
        fields = [
            'id',
            'title',
            'home_team',
            'away_team',
            'home_team_logo',
            'away_team_logo',
            'league',
            'league_logo',
            'thumbnail',
            'status',
            'match_date',
            'end_time',
            'streaming_links',
        ]

    def get_streaming_links(self, obj):
        return StreamingLinkSerializer(obj.active_links(), many=True, context=self.context).data


class MatchDetailSerializer(MatchListSerializer):
    playback_authorized = serializers.SerializerMethodField()
    access_opens_at = serializers.SerializerMethodField()

    class Meta(MatchListSerializer.Meta):
        fields = MatchListSerializer.Meta.fields + ['playback_authorized', 'access_opens_at']

    def get_playback_authorized(self, obj):
        return obj.is_playback_authorized()

    def get_access_opens_at(self, obj):
        return obj.access_opens_at()


class WatchSerializer(serializers.Serializer):
    link_id = serializers.IntegerField(required=False, allow_null=True)


class StreamReportSerializer(serializers.ModelSerializer):
    class Meta:
        model = StreamReport
        fields = ['id', 'match', 'link', 'user', 'reason', 'status', 'created_at']
        read_only_fields = ['id', 'match', 'user', 'status', 'created_at']

    def validate_reason(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Reason is required")
        return value
