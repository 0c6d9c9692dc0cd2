from .calibration import scale_factor
from .feature_extraction import measure_frontal, measure_profile
from .pose import estimate_yaw
from .frame_buffer import FrameBuffer
from .session import CaptureSession
from .recommendation import recommend
