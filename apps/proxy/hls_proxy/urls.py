from django.urls import path

from . import views

app_name = 'hls_proxy'

urlpatterns = [
    path('manifest', views.manifest_proxy, name='manifest'),
    path('segment', views.segment_proxy, name='segment'),
]
