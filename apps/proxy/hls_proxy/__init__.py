"""
HLS Proxy Module

Tunnels third-party HLS playlists, segments and keys through this deployment
so browsers can play them despite CORS and mixed-content restrictions.
"""
