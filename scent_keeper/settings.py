import os
from pathlib import Path
from dotenv import load_dotenv

# --- Base Directory ---
BASE_DIR = Path(__file__).resolve().parent.parent

# --- Load Environment Variables ---
load_dotenv(BASE_DIR / ".env")

# --- Path Configuration ---
OUTPUT_DIR = BASE_DIR / os.getenv("OUTPUT_DIR", "output")
LOG_DIR = BASE_DIR / os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Optional directory of per-item images named "<item id>.<ext>".
IMAGE_STORE_DIR = os.getenv("IMAGE_STORE_DIR")

# --- Filename Configuration ---
PRODUCT_NAME = os.getenv("PRODUCT_NAME", "my-scent-keeper")
BACKUP_EXTENSION = ".xlsx"
SHEET_NAME = os.getenv("SHEET_NAME", "Inventory")

# --- Image Handling ---
MAX_IMAGE_SIZE = int(os.getenv("MAX_IMAGE_SIZE", 1024 * 1024))  # 1MB limit for Excel images
COMPRESSION_QUALITY = float(os.getenv("COMPRESSION_QUALITY", "0.7"))
MAX_IMAGE_DIMENSION = int(os.getenv("MAX_IMAGE_DIMENSION", "800"))

# --- Batching ---
BATCH_SIZE = int(os.getenv("BATCH_SIZE", "10"))
BATCH_DELAY_SECONDS = float(os.getenv("BATCH_DELAY_SECONDS", "0.01"))

# --- Import Defaults ---
DATE_FORMAT = "%Y-%m-%d"
DEFAULT_BARCODE = "N/A"
DEFAULT_LOCATION = "Unspecified"
DEFAULT_IMAGE_TYPE = "image/jpeg"

# --- Spreadsheet Schema ---
# Column order is significant: the importer reads cells by position.
HEADERS = [
    "Product Name",
    "Barcode",
    "Quantity",
    "Location",
    "Rating",
    "Notes",
    "Date Added",
]
IMAGE_HEADERS = ["Image Data", "Image Type"]

COLUMN_WIDTHS = [25, 15, 10, 20, 10, 30, 15]
IMAGE_COLUMN_WIDTHS = [20, 15]
