from aiogram.fsm.state import State, StatesGroup


class CheckoutStates(StatesGroup):
    review = State()
    email = State()
