"""VidTube: social video-sharing backend."""
