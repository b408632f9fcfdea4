import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from food_explorer.bot.handlers import router
from food_explorer.cart.store import CartStore
from food_explorer.config import LOG_FORMAT, require_bot_settings, settings
from food_explorer.db.sqlite import SqliteStorage
from food_explorer.services.catalog import CatalogClient
from food_explorer.services.checkout import CheckoutFlow
from food_explorer.services.listing import CatalogListing


def build_dispatcher(store: CartStore, catalog: CatalogClient) -> Dispatcher:
    # store/catalog/listing/checkout are injected into handlers by name
    dp = Dispatcher(
        store=store,
        catalog=catalog,
        listing=CatalogListing(catalog),
        checkout=CheckoutFlow(store),
    )
    dp.include_router(router)
    return dp


async def main() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format=LOG_FORMAT,
    )
    require_bot_settings()

    storage = SqliteStorage()
    storage.init_db()
    store = CartStore(storage)
    store.load()

    bot = Bot(token=settings.bot_token, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    dp = build_dispatcher(store, CatalogClient())

    await dp.start_polling(bot)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
