from aiogram.types import KeyboardButton, ReplyKeyboardMarkup

CONTINUE_TEXT = "Continue to Email"
BACK_TEXT = "Back"


def main_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text="/cart"), KeyboardButton(text="/checkout")],
            [KeyboardButton(text="/categories"), KeyboardButton(text="/more")],
            [KeyboardButton(text="/orders"), KeyboardButton(text="/help")],
        ],
        resize_keyboard=True,
    )


def checkout_review_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text=CONTINUE_TEXT)], [KeyboardButton(text="/cancel")]],
        resize_keyboard=True,
        one_time_keyboard=True,
    )


def checkout_email_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text=BACK_TEXT), KeyboardButton(text="/cancel")]],
        resize_keyboard=True,
        one_time_keyboard=True,
    )
