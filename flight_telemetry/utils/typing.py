from typing import Any, Callable, TypeVar

T = TypeVar("T")
U = TypeVar("U")
A = TypeVar("A")
R = TypeVar("R")

MapFunction = Callable[[T], U]
FilterFunction = Callable[[T], bool]
KeySelector = Callable[[T], Any]
TimestampExtractor = Callable[[T], int]
