"""
Playback fallback protocol for match streams.

Classifies stream sources and decides, for each player error, whether to
retry in place, reload through the HLS proxy, or move on to the next source.
"""
