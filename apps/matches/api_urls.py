from django.apps import apps
from django.urls import path

from apps.proxy.hls_proxy.views import manifest_proxy

from .api_views import (
    MatchDetailAPIView,
    MatchListAPIView,
    MatchReportAPIView,
    MatchWatchAPIView,
    StreamReportListAPIView,
)

app_name = 'matches'

broadcaster = apps.get_app_config('core').broadcaster

urlpatterns = [
    path('', MatchListAPIView.as_view(), name='match-list'),
    path('proxy-m3u8', manifest_proxy, name='proxy-m3u8'),
    path('reports/', StreamReportListAPIView.as_view(), name='report-list'),
    path('<int:pk>/', MatchDetailAPIView.as_view(), name='match-detail'),
    path('<int:pk>/watch/', MatchWatchAPIView.as_view(broadcaster=broadcaster), name='match-watch'),
    path('<int:pk>/report/', MatchReportAPIView.as_view(broadcaster=broadcaster), name='match-report'),
]
