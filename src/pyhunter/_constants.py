"""Internal constants shared across the library."""

from urllib.parse import urlsplit

DEFAULT_TRANSPORT_URL = "ws://10.10.3.103:9090"
DEFAULT_STATUS_TOPIC = "/hunter_status"
DEFAULT_POSE_TOPIC = "/gnss/septentrio/raw/fix"
DEFAULT_PATH_TOPIC = "/gps/waypoints"

# Origin of the local tangent plane (Prague test site).
DEFAULT_ORIGIN_LONGITUDE = 14.4208
DEFAULT_ORIGIN_LATITUDE = 50.088

DEFAULT_TRAIL_MAX_LENGTH = 300
DEFAULT_ZOOM = 16.0
DEFAULT_SIM_TICK_INTERVAL = 0.12
PAN_DURATION_MS = 500

# ------------------------------------------------------------------
# Message type tags (rosbridge "type" field)
# ------------------------------------------------------------------

STATUS_MESSAGE_TYPE = "hunter_msgs/HunterStatus"
ODOMETRY_MESSAGE_TYPE = "nav_msgs/Odometry"
NAV_SAT_FIX_MESSAGE_TYPE = "sensor_msgs/NavSatFix"
PATH_MESSAGE_TYPE = "artemis_msgs/msg/NavSatFixList"

# ------------------------------------------------------------------
# Camera streams (web_video_server on the vehicle)
# ------------------------------------------------------------------

CAMERA_STREAM_PORT = 8080
FRONT_CAMERA_TOPIC = "/camera/camera1/color/image_raw"
REAR_CAMERA_TOPIC = "/camera/camera2/color/image_raw"
_FALLBACK_STREAM_BASE = f"http://localhost:{CAMERA_STREAM_PORT}"


def camera_stream_base(transport_url: str) -> str:
    """Derive the HTTP base of the video stream server from the transport URL.

    ``wss://`` maps to ``https``, everything else to ``http``; the host is kept
    and the port is always :data:`CAMERA_STREAM_PORT`.
    """
    try:
        parts = urlsplit(transport_url)
        host = parts.hostname
    except ValueError:
        return _FALLBACK_STREAM_BASE
    if not host:
        return _FALLBACK_STREAM_BASE
    scheme = "https" if parts.scheme == "wss" else "http"
    return f"{scheme}://{host}:{CAMERA_STREAM_PORT}"


def camera_stream_url(transport_url: str, topic: str) -> str:
    return f"{camera_stream_base(transport_url)}/stream?topic={topic}"
