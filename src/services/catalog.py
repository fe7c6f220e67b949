from __future__ import annotations

import dataclasses
from typing import Dict, Iterable, List, Optional

import db.crud as crud
from db.models import ArtisanProfile, PortfolioItem, Product
from services.errors import NotAuthorized, ProductNotFound
from services.session import SessionManager
from utils.logger import get_logger

_logger = get_logger(__name__)


class CatalogService:
    """
    Products and artisan profiles. Reads are open; writes need a session.
    """

    def __init__(self, sessions: SessionManager, store=crud) -> None:
        self._sessions = sessions
        self._store = store

    # products

    async def list_products(self) -> List[Product]:
        return await self._store.list_products()

    async def get_product(self, product_id: str) -> Optional[Product]:
        return await self._store.get_product(product_id)

    async def get_products(self, product_ids: Iterable[str]) -> Dict[str, Product]:
        return await self._store.get_products(product_ids)

    async def search_products(self, query: str) -> List[Product]:
        """Plain keyword search; also the fallback when AI search fails."""
        return await self._store.search_products(query)

    async def products_by_artisan(self, artisan_name: str) -> List[Product]:
        return await self._store.products_by_artisan(artisan_name)

    async def create_product(self, product: Product) -> Product:
        await self._sessions.require_session()
        created = await self._store.create_product(product)
        _logger.info(f"Created product {created.id} ({created.name})")
        return created

    async def update_product(self, product: Product) -> Product:
        await self._sessions.require_session()
        if not product.id or not await self._store.update_product(product):
            raise ProductNotFound()
        _logger.info(f"Updated product {product.id}")
        return product

    async def save_product(self, product: Product) -> Product:
        """Create when the product has no id yet, update otherwise."""
        if product.id:
            return await self.update_product(product)
        return await self.create_product(product)

    async def delete_product(self, product_id: str) -> None:
        await self._sessions.require_session()
        if not await self._store.delete_product(product_id):
            raise ProductNotFound()
        _logger.info(f"Deleted product {product_id}")

    # artisans

    async def list_artisans(self) -> List[ArtisanProfile]:
        return await self._store.list_artisans()

    async def get_artisan(self, artisan_id: str) -> Optional[ArtisanProfile]:
        return await self._store.get_profile(artisan_id)

    async def update_profile(self, profile: ArtisanProfile) -> ArtisanProfile:
        """Replace the caller's own profile wholesale; returns the stored version."""
        current = await self._sessions.require_session()
        if profile.id != current.id:
            raise NotAuthorized()
        await self._store.update_profile(profile)
        _logger.info(f"Updated profile {profile.id}")
        return await self._store.get_profile(profile.id)

    async def add_portfolio_item(
        self, title: str, image_url: str = "", description: str = ""
    ) -> ArtisanProfile:
        current = await self._sessions.require_session()
        item = PortfolioItem(
            id=await self._store.new_portfolio_item_id(),
            title=title,
            image_url=image_url,
            description=description,
        )
        return await self.update_profile(
            dataclasses.replace(current, portfolio=current.portfolio + (item,))
        )

    async def remove_portfolio_item(self, item_id: str) -> ArtisanProfile:
        current = await self._sessions.require_session()
        return await self.update_profile(
            dataclasses.replace(
                current,
                portfolio=tuple(p for p in current.portfolio if p.id != item_id),
            )
        )
