# === Standard Page Sizes (points, portrait) ===
LETTER_PORTRAIT = (612.0, 792.0)
A4_PORTRAIT = (595.0, 842.0)
LEGAL_PORTRAIT = (612.0, 1008.0)
STANDARD_PAGE_SIZES = {
    "letter": LETTER_PORTRAIT,
    "a4": A4_PORTRAIT,
    "legal": LEGAL_PORTRAIT,
}

# === Rotation ===
CANONICAL_ROTATIONS = (0, 90, 180, 270)

# === Stamp Sizing ===
STAMP_STRATEGIES = ("fixed", "relative")
DEFAULT_STAMP_STRATEGY = "fixed"
DEFAULT_FIXED_STAMP_SIZE = (150.0, 75.0)  # w, h in pt
MIN_STAMP_DIMENSION = 1.0                 # clamp floor, pt

# === Scanned Document Detection ===
SCAN_SIZE_TOLERANCE = 20  # pt
SCAN_CONFIDENCE_THRESHOLD = 0.4
SCAN_FIELD_WEIGHTS = {
    "/Creator": 0.6,
    "/Producer": 0.5,
    "/Title": 0.3,
    "/Subject": 0.2,
}
SCAN_MIXED_ORIENTATION_WEIGHT = 0.3
SCANNER_KEYWORDS = [
    "scan", "scanner", "scanned", "xerox", "canon", "hp", "epson", "brother",
    "konica", "ricoh", "sharp", "toshiba", "kyocera", "panasonic", "samsung",
    "adobe scan", "camscanner", "genius scan", "office lens", "notes",
    "mobileiron", "neat", "readdle", "evernote", "microsoft lens",
]
CORRECT_SCANNED_ORIENTATION = True

# === Output ===
STAMPED_FILE_SUFFIX = "_signed"

# === Logging Settings ===
LOG_DIR = "logs"
LOG_FILE = "app.log"
LOG_LEVEL = "INFO"

import os
import json
import logging

CONFIG_FILE_NAME = ".signdeck_config.json"
CONFIG_DIR = os.path.expanduser("~/.signdeck")
CONFIG_PATH = os.path.join(CONFIG_DIR, CONFIG_FILE_NAME)

def save_settings(settings: dict, path: str = CONFIG_PATH):
    """保存用户设置到配置文件"""
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(settings, f, ensure_ascii=False, indent=4)
    except Exception:
        logging.getLogger(__name__).error("配置保存失败", exc_info=True)

def load_settings(path: str = CONFIG_PATH) -> dict:
    """从配置文件加载用户设置"""
    try:
        if os.path.exists(path):
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
    except Exception:
        logging.getLogger(__name__).error("配置加载失败", exc_info=True)
    return {}


# === Settings Defaults & Compatibility ===
def apply_defaults(settings: dict) -> dict:
    """确保配置包含所有默认值（适用于旧版配置文件）"""
    defaults = {
        "stamp_strategy": DEFAULT_STAMP_STRATEGY,
        "fixed_stamp_width": DEFAULT_FIXED_STAMP_SIZE[0],
        "fixed_stamp_height": DEFAULT_FIXED_STAMP_SIZE[1],
        "preserve_aspect": True,
        "correct_scanned_orientation": CORRECT_SCANNED_ORIENTATION,
        "output_suffix": STAMPED_FILE_SUFFIX,
    }
    for key, value in defaults.items():
        if key not in settings:
            settings[key] = value
        else:
            if key in ["fixed_stamp_width", "fixed_stamp_height"]:
                try:
                    settings[key] = float(settings[key])
                except Exception:
                    settings[key] = value
            elif key in ["preserve_aspect", "correct_scanned_orientation"]:
                settings[key] = bool(settings[key])
            elif key == "stamp_strategy":
                if settings[key] not in STAMP_STRATEGIES:
                    settings[key] = value
    return settings
