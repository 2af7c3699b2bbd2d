from django.apps import AppConfig


class HLSProxyAppConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.proxy.hls_proxy'
    label = 'hls_proxy'
    verbose_name = 'HLS Proxy'
