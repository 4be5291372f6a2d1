import logging
from typing import Any, Dict

from config import DEFAULT_SHOP, USERS
from repository import OwnerScope
from schemas import ShopRecord, ShopUpdate

logger = logging.getLogger(__name__)

REGISTERED_FIELDS = ("shop_name", "address", "mobile")


def _initial_profile(scope: OwnerScope) -> Dict[str, Any]:
    profile = dict(DEFAULT_SHOP, email=scope.session.owner_email)
    user = scope.database[USERS].find_one({"email": scope.session.owner_email})
    if user:
        profile.update({k: user[k] for k in REGISTERED_FIELDS if user.get(k)})
    return profile


def get_or_create_shop(scope: OwnerScope) -> ShopRecord:
    """The owner's shop profile, created from the registration details on first read."""
    doc = scope.shops.find_one()
    if doc is None:
        shop_id = scope.shops.insert(_initial_profile(scope))
        logger.info("Created shop profile %s for %s", shop_id, scope.session.owner_email)
        doc = scope.shops.get(shop_id)
    return ShopRecord.from_document(doc)


def update_shop(scope: OwnerScope, changes: ShopUpdate) -> ShopRecord:
    shop = get_or_create_shop(scope)
    fields = {k: v.strip() for k, v in changes.model_dump(exclude_none=True).items()}
    if fields:
        scope.shops.update(shop.id, fields)
    return ShopRecord.from_document(scope.shops.get(shop.id))
