from coffeeshop.repositories.base import UnitOfWork

ABOUT_US = "aboutUs"
CONTACT_US = "contactUs"

TITLES = {
    ABOUT_US: "درباره ما",
    CONTACT_US: "تماس با ما",
}


class ContentService:
    """Editable site texts plus the admin overview counts"""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def get_page(self, key: str) -> dict:
        return {"title": TITLES[key], "content": self.uow.content.get(key)}

    def set_page(self, key: str, content: str) -> dict:
        self.uow.content.set(key, content)
        self.uow.commit()
        return self.get_page(key)

    def overview(self) -> dict:
        return {
            "products": self.uow.products.count({"is_active": True}),
            "categories": self.uow.categories.count({"is_active": True}),
            "users": self.uow.users.count(),
            "orders": self.uow.orders.count(),
        }
