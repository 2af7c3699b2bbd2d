from django.urls import include, path

urlpatterns = [
    path('', include('apps.proxy.hls_proxy.urls')),
]
