import os
from dotenv import load_dotenv

load_dotenv()

# Free tier: lifetime quota of generated outreach emails (never resets on its own)
MAX_FREE_CREDITS = int(os.getenv("MAX_FREE_CREDITS", "5"))

# Conditional-update retries after the first attempt. Must be >= MAX_FREE_CREDITS
# so a caller racing against a fresh account always ends in success or quota exhausted.
MAX_DEDUCT_RETRIES = int(os.getenv("CREDIT_MAX_RETRIES", "5"))
RETRY_BACKOFF_SECONDS = float(os.getenv("CREDIT_RETRY_BACKOFF_SECONDS", "0.05"))
