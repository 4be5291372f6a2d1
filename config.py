import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
DATABASE_NAME = os.getenv("DATABASE_NAME", "laundry").strip()
CORS_ORIGINS = [
    x.strip()
    for x in os.getenv("CORS_ORIGINS", "*").split(",")
    if x.strip()
]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()
BILLS_PAGE_SIZE = int(os.getenv("BILLS_PAGE_SIZE", "10"))
PORT = int(os.getenv("PORT", "8000"))
ADMIN_EMAILS = [
    x.strip().lower()
    for x in os.getenv("ADMIN_EMAILS", "").split(",")
    if x.strip()
]

# Collection names
CUSTOMERS = "customers"
CLOTH_TYPES = "cloth-types"
LEGACY_CLOTH_TYPES = "clothTypes"
ORDERS = "orders"
BILLS = "bills"
ACTIVITIES = "activities"
SHOPS = "shops"
USERS = "users"
PASSWORD_RESETS = "password_resets"

DEFAULT_SHOP = {
    "shop_name": "The Laundry Hub",
    "address": "123 Main Street, Anytown",
    "mobile": "123-456-7890",
    "operating_hours": "10:00 AM - 8:00 PM",
}
