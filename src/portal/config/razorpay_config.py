import os
import logging
from dotenv import load_dotenv

# Configure logging
logger = logging.getLogger(__name__)

# Load environment variables from .env file
load_dotenv()

# Razorpay Configuration
RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID")
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET")
RAZORPAY_WEBHOOK_SECRET = os.getenv("RAZORPAY_WEBHOOK_SECRET")
RAZORPAY_API_BASE = os.getenv("RAZORPAY_API_BASE", "https://api.razorpay.com/v1")
RAZORPAY_TIMEOUT_SECONDS = float(os.getenv("RAZORPAY_TIMEOUT_SECONDS", "15"))

# Check for missing required configuration
missing_vars = []
if not RAZORPAY_KEY_ID:
    missing_vars.append("RAZORPAY_KEY_ID")
if not RAZORPAY_KEY_SECRET:
    missing_vars.append("RAZORPAY_KEY_SECRET")
if not RAZORPAY_WEBHOOK_SECRET:
    missing_vars.append("RAZORPAY_WEBHOOK_SECRET")

if missing_vars:
    logger.error(f"Missing Razorpay configuration: {', '.join(missing_vars)}")
    logger.error("Payment orders and signature checks will fail until these are set in your .env file")
