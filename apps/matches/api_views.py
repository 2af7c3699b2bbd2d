import logging

from django.db import transaction
from django.db.models import F, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.proxy.hls_proxy.utils import get_proxy_endpoints

from .models import Match, StreamingLink, StreamReport, WatchHistory
from .serializers import (
    MatchDetailSerializer,
    MatchListSerializer,
    StreamReportSerializer,
    WatchSerializer,
)

logger = logging.getLogger(__name__)

MAX_MATCHES = 100


class BroadcastingAPIView(APIView):
    """APIView that receives its event broadcaster through as_view()"""

    broadcaster = None

    def publish(self, event_name, payload):
        if self.broadcaster is None:
            logger.debug(f"No broadcaster configured, dropping '{event_name}'")
            return
        self.broadcaster.publish(event_name, payload)


def _serializer_context(request):
    manifest_endpoint, _ = get_proxy_endpoints(request)
    return {'request': request, 'proxy_endpoint': manifest_endpoint}


class MatchListAPIView(APIView):
    """
    List matches.

    Without a status filter, live and upcoming matches are returned. LIVE
    also includes upcoming matches whose kickoff has passed; UPCOMING only
    returns matches still in the future.
    """
    permission_classes = [AllowAny]

    def get(self, request):
        status_filter = request.query_params.get('status')
        league = request.query_params.get('league')
        now = timezone.now()

        queryset = Match.objects.prefetch_related('streaming_links')

        if status_filter == Match.Status.LIVE:
            queryset = queryset.filter(
                Q(status=Match.Status.LIVE) |
                Q(status=Match.Status.UPCOMING, match_date__lte=now)
            )
        elif status_filter == Match.Status.UPCOMING:
            queryset = queryset.filter(status=Match.Status.UPCOMING, match_date__gte=now)
        elif status_filter:
            queryset = queryset.filter(status=status_filter)
        else:
            queryset = queryset.filter(status__in=[Match.Status.LIVE, Match.Status.UPCOMING])

        if league:
            queryset = queryset.filter(league=league)

        # 'LIVE' sorts before 'UPCOMING'
        matches = queryset.order_by('status', 'match_date')[:MAX_MATCHES]

        serializer = MatchListSerializer(matches, many=True, context=_serializer_context(request))
        return Response({'matches': serializer.data})


class MatchDetailAPIView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, pk):
        match = get_object_or_404(Match.objects.prefetch_related('streaming_links'), pk=pk)
        serializer = MatchDetailSerializer(match, context=_serializer_context(request))
        return Response({'match': serializer.data})


class MatchWatchAPIView(BroadcastingAPIView):
    """Record that the current user watched a match, optionally via a link"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        match = get_object_or_404(Match, pk=pk)

        serializer = WatchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        link_id = serializer.validated_data.get('link_id')

        if link_id and not StreamingLink.objects.filter(id=link_id, match=match).exists():
            return Response(
                {'error': 'Streaming link not found'},
                status=status.HTTP_404_NOT_FOUND
            )

        with transaction.atomic():
            WatchHistory.objects.update_or_create(
                user=request.user,
                match=match,
                defaults={'watched_at': timezone.now()},
            )
            if link_id:
                StreamingLink.objects.filter(id=link_id).update(views=F('views') + 1)

        self.publish('match.watched', {
            'match_id': match.id,
            'user_id': request.user.id,
            'link_id': link_id,
        })

        return Response({'message': 'Match watched'})


class MatchReportAPIView(BroadcastingAPIView):
    """Report a broken stream for a match"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        match = get_object_or_404(Match, pk=pk)

        serializer = StreamReportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        link = serializer.validated_data.get('link')
        if link is not None and link.match_id != match.id:
            return Response(
                {'error': 'Streaming link does not belong to this match'},
                status=status.HTTP_400_BAD_REQUEST
            )

        report = serializer.save(match=match, user=request.user)
        logger.info(f"Stream report {report.id} for match {match.id} by user {request.user.id}")

        self.publish('stream.reported', {
            'report_id': report.id,
            'match_id': match.id,
            'link_id': link.id if link else None,
            'reason': report.reason,
        })

        return Response(
            {'message': 'Report submitted', 'report': StreamReportSerializer(report).data},
            status=status.HTTP_201_CREATED
        )


class StreamReportListAPIView(APIView):
    """Stream reports for admins, newest first; ?status= filters"""
    permission_classes = [IsAdminUser]

    def get(self, request):
        reports = StreamReport.objects.select_related('match', 'link')
        report_status = request.query_params.get('status')
        if report_status:
            reports = reports.filter(status=report_status)
        return Response({'reports': StreamReportSerializer(reports[:MAX_MATCHES], many=True).data})
