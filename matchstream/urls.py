from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/matches/', include('apps.matches.api_urls')),
    path('proxy/', include('apps.proxy.urls')),
]
