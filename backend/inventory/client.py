"""HTTP client and client-side product repository.

``CatalogClient`` is a thin wrapper over the REST API. ``ProductRepository``
keeps the list of products a UI renders from: it refetches the whole list
after every successful mutation and can be invalidated explicitly.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx

LOW_STOCK_THRESHOLD = 10

# (filename, file object or bytes, content type)
ImageFile = Tuple[str, Any, str]


class CatalogAPIError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


def _form_data(fields: Dict[str, Any]) -> Dict[str, str]:
    return {key: str(value) for key, value in fields.items() if value is not None}


class CatalogClient:
    def __init__(self, base_url: str = "http://localhost:5000", timeout: float = 10.0,
                 http: Optional[httpx.Client] = None):
        self.http = http or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)
        self.path = "/api/products"

    def close(self):
        self.http.close()

    def _check(self, response: httpx.Response) -> Any:
        if response.is_success:
            return response.json()
        try:
            message = response.json().get("message") or response.reason_phrase
        except ValueError:
            message = response.text or response.reason_phrase
        raise CatalogAPIError(response.status_code, message)

    def list_products(self) -> List[Dict[str, Any]]:
        return self._check(self.http.get(self.path))

    def get_product(self, product_id: str) -> Dict[str, Any]:
        return self._check(self.http.get(f"{self.path}/{product_id}"))

    def create_product(self, name: str, description: str, quantity: int, price: float,
                       image: Optional[ImageFile] = None) -> Dict[str, Any]:
        data = _form_data({"name": name, "description": description, "quantity": quantity, "price": price})
        files = {"foto": image} if image else None
        return self._check(self.http.post(self.path, data=data, files=files))

    def update_product(self, product_id: str, image: Optional[ImageFile] = None,
                       **fields: Any) -> Dict[str, Any]:
        files = {"foto": image} if image else None
        return self._check(self.http.put(f"{self.path}/{product_id}", data=_form_data(fields), files=files))

    def delete_product(self, product_id: str) -> Dict[str, Any]:
        return self._check(self.http.delete(f"{self.path}/{product_id}"))


@dataclass
class InventoryStats:
    total_value: float
    total_items: int
    low_stock_items: int


class ProductRepository:
    """
    Client-side cache of the full product list.

    Reads go through ``products()``, which refetches when the cache is stale.
    Mutations invalidate the cache only after the server accepted them, so a
    failed write leaves the cached list untouched.
    """

    def __init__(self, client: CatalogClient):
        self.client = client
        self._products: List[Dict[str, Any]] = []
        self._stale = True

    @property
    def is_stale(self) -> bool:
        return self._stale

    def invalidate(self):
        self._stale = True

    def refresh(self) -> List[Dict[str, Any]]:
        self._products = self.client.list_products()
        self._stale = False
        return list(self._products)

    def products(self) -> List[Dict[str, Any]]:
        if self._stale:
            return self.refresh()
        return list(self._products)

    def find(self, product_id: str) -> Optional[Dict[str, Any]]:
        return next((p for p in self.products() if p["id"] == product_id), None)

    def search(self, term: str) -> List[Dict[str, Any]]:
        """Case-insensitive match on name or description; empty term matches all."""
        needle = term.strip().lower()
        return [
            p for p in self.products()
            if needle in p["name"].lower() or needle in p["description"].lower()
        ]

    def stats(self) -> InventoryStats:
        products = self.products()
        return InventoryStats(
            total_value=round(sum(p["price"] * p["quantity"] for p in products), 2),
            total_items=len(products),
            low_stock_items=sum(1 for p in products if p["quantity"] < LOW_STOCK_THRESHOLD),
        )

    def save(self, fields: Dict[str, Any], image: Optional[ImageFile] = None,
             product_id: Optional[str] = None) -> Dict[str, Any]:
        """Create when ``product_id`` is None, otherwise update."""
        if product_id is None:
            result = self.client.create_product(image=image, **fields)
        else:
            result = self.client.update_product(product_id, image=image, **fields)
        self.invalidate()
        return result

    def delete(self, product_id: str) -> Dict[str, Any]:
        result = self.client.delete_product(product_id)
        self.invalidate()
        return result
