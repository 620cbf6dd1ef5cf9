# pickup_api/utils/clock.py
# Time and id sources are passed into the services so tests can pin them.
import uuid
import datetime as dt
from typing import Callable

Clock = Callable[[], dt.datetime]
IdFactory = Callable[[], str]

def now_utc() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)

def new_id() -> str:
    return str(uuid.uuid4())

def get_clock() -> Clock:
    return now_utc

def get_id_factory() -> IdFactory:
    return new_id
