"""Валидаторы и нормализаторы входных данных."""

import ast
import operator as op
import re
from decimal import Decimal, InvalidOperation

from utils.money import round_to_places


class FieldValidationError(ValueError):
    """Некорректное значение одного поля формы."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class NotFoundError(LookupError):
    """Запрошенная запись или вид импорта/экспорта не существует."""


def require_text(field: str, value) -> str:
    """Обрезанное значение; пустое поле считается ошибкой."""
    text = str(value).strip() if value is not None else ""
    if not text:
        raise FieldValidationError(field, f"{field} is required")
    return text


def optional_text(value) -> str | None:
    """Обрезанный текст, ``None`` для пустых значений."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_person_name(name: str) -> str:
    """Схлопывает пробелы и делает заглавной первую букву каждой части: ``"mary-ann  o'neil"`` → ``"Mary-Ann O'neil"``."""
    parts = re.split(r"\s+", (name or "").strip())

    def norm(word: str) -> str:
        return "-".join(p[:1].upper() + p[1:] for p in word.split("-") if p)

    return " ".join(norm(p) for p in parts if p)


def normalize_email(email: str | None) -> str | None:
    text = optional_text(email)
    if text is None:
        return None
    text = text.lower()
    if not re.fullmatch(r"[^@\s]+@[^@\s]+\.[^@\s]+", text):
        raise FieldValidationError("email", f"Invalid email address: {email}")
    return text


def normalize_number(
    value: str | int | float | None, *, percent_as_fraction: bool = True
) -> str | None:
    """Нормализует строку с числом и поддерживает простые выражения.

    Удаляет пробелы и буквы и вычисляет простые выражения (``10*10``, ``5+5``).
    Запятая перед ровно тремя цифрами отделяет тысячи (``1,200``), иначе
    это десятичный разделитель (``12,5``). ``10%`` интерпретируется как
    ``10/100``; при ``percent_as_fraction=False`` знак процента просто
    отбрасывается, число остаётся прежним.
    """

    if value is None:
        return None

    text = str(value)
    text = re.sub(r"\s+", "", text)
    text = text.replace("\u00a0", "").replace("$", "")
    text = re.sub(r"(?<=\d),(?=\d{3}(?!\d))", "", text)
    if "," in text:
        if "." in text:
            # "1,20.5": разделители не согласуются
            raise ValueError(f"Invalid number: {value!r}")
        text = text.replace(",", ".")
    text = re.sub(r"[a-zA-Z]+", "", text)
    text = text.rstrip(".")

    if text == "":
        return text

    if percent_as_fraction:
        expr = re.sub(r"(\d+(?:\.\d+)?)%", r"(\1/100)", text)
    else:
        expr = text.replace("%", "")

    try:
        node = ast.parse(expr, mode="eval").body

        allowed = {
            ast.Add: op.add,
            ast.Sub: op.sub,
            ast.Mult: op.mul,
            ast.Div: op.truediv,
        }

        def _eval(n):
            if isinstance(n, ast.Constant) and isinstance(n.value, (int, float)):
                return Decimal(str(n.value))
            if isinstance(n, ast.UnaryOp) and isinstance(n.op, ast.USub):
                return -_eval(n.operand)
            if isinstance(n, ast.BinOp) and type(n.op) in allowed:
                return allowed[type(n.op)](_eval(n.left), _eval(n.right))
            raise ValueError("Unsupported expression")

        result = _eval(node)
    except (SyntaxError, ValueError, ZeroDivisionError, InvalidOperation):
        raise ValueError(f"Invalid number: {value!r}") from None
    return format(result.normalize(), "f")


def parse_decimal(
    field: str,
    value,
    *,
    minimum: Decimal | int | None = None,
    maximum: Decimal | int | None = None,
    required: bool = True,
    places: int | None = None,
) -> Decimal | None:
    """Сумма или ставка из пользовательского ввода с проверкой границ.

    ``%`` не превращает ставку в долю: ``"10%"`` остаётся ``10``.
    ``places`` округляет до точности колонки, в которую пойдёт значение.
    """
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            text = normalize_number(value, percent_as_fraction=False)
        except ValueError:
            raise FieldValidationError(field, f"{field} must be a number") from None
        if not text:
            if required:
                raise FieldValidationError(field, f"{field} is required")
            return None
        number = Decimal(text)
    if places is not None:
        number = round_to_places(number, places)
    if minimum is not None and number < Decimal(minimum):
        raise FieldValidationError(field, f"{field} cannot be less than {minimum}")
    if maximum is not None and number > Decimal(maximum):
        raise FieldValidationError(field, f"{field} cannot be greater than {maximum}")
    return number


def parse_int_in_range(field: str, value, low: int, high: int) -> int:
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise FieldValidationError(
            field, f"{field} must be a number between {low} and {high}"
        ) from None
    if not low <= number <= high:
        raise FieldValidationError(
            field, f"{field} must be a number between {low} and {high}"
        )
    return number
