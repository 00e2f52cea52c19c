"""In-memory directory for development and testing."""

from fulfillment.directory.port import Directory, ProductRecord, UserRecord


class FakeDirectory(Directory):
    def __init__(self) -> None:
        self.users: dict[str, UserRecord] = {}
        self.products: dict[str, ProductRecord] = {}

    def add_user(self, user_id, name="Customer", phone=None) -> UserRecord:
        user = UserRecord(user_id=str(user_id), name=name, phone=phone)
        self.users[user.user_id] = user
        return user

    def add_product(self, product_id, shop_id, name, price, is_available=True) -> ProductRecord:
        product = ProductRecord(
            product_id=str(product_id),
            shop_id=str(shop_id),
            name=name,
            price=price,
            is_available=is_available,
        )
        self.products[product.product_id] = product
        return product

    def remove_product(self, product_id) -> None:
        self.products.pop(str(product_id), None)

    def get_user(self, user_id: str) -> UserRecord | None:
        return self.users.get(str(user_id))

    def get_products(self, product_ids: list[str]) -> dict[str, ProductRecord]:
        return {str(pid): self.products[str(pid)] for pid in product_ids if str(pid) in self.products}
