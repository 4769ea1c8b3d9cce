"""
MonOCR Configuration
======================
Model contract, segmentation constants and runtime settings for the
MonOCR line recognizer.

Model: CTC sequence recognizer taking (1, 1, 64, 1024) grayscale line
tensors in [-1, 1] and producing (1, T, C) logits, class 0 = blank.
"""

import os


class OCRConfig:
    """Configuration for the MonOCR pipeline."""

    # --- Assets ---
    MODEL_REF = os.environ.get(
        "MONOCR_MODEL",
        "https://huggingface.co/janakhpon/monocr/resolve/main/onnx/monocr.onnx",
    )
    # The charset ships with the trained model; no default location
    CHARSET_REF = os.environ.get("MONOCR_CHARSET", "")

    # --- Model contract ---
    IMG_HEIGHT = 64           # Fixed input height
    IMG_WIDTH = 1024          # Fixed input width (pad shorter, squeeze longer)
    NUM_CHANNELS = 1          # Grayscale
    INPUT_NAME = "input"      # Used when the backend does not report its inputs
    CTC_BLANK = 0
    BACKGROUND = 255          # White canvas value before normalization

    # --- Segmentation ---
    WINDOW_SIZE = 25          # Adaptive threshold window (half-window 12)
    BIAS_C = 10               # pixel < local_mean - C  ->  text
    SMOOTH_KERNEL = 5         # Box filter over the projection profile
    DENSITY_RATIO = 0.02      # Row is text if density > max * ratio
    MIN_LINE_SPAN = 8         # Runs of <= 8 rows are noise
    LINE_PADDING = 4          # Rows added above and below each line
    CHUNK_ROWS = 256          # Rows processed at once by grayscale/binarization

    # --- Runtime (ONNX Runtime) ---
    BACKEND = "onnx"          # "onnx" or "torchscript"
    GRAPH_OPTIMIZATION = "all"
    ENABLE_CPU_MEM_ARENA = True
    ENABLE_MEM_PATTERN = True
    LOG_SEVERITY_LEVEL = 3    # Errors only
    NUM_THREADS = os.cpu_count() or 4
    PROVIDERS = ["CUDAExecutionProvider", "CPUExecutionProvider"]

    # --- Worker ---
    TIMEOUT_S = 60.0          # Per-request deadline

    # --- Download ---
    DOWNLOAD_TIMEOUT_S = 120.0
    USER_AGENT = "MonOCR-Python"
