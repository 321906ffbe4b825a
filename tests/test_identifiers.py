import pytest

from zelote.core.device_ids import device_id_number, format_device_id, normalize_device_id
from zelote.core.emails import user_type_from_email, validate_email
from zelote.core.statuses import DEVICE_STATUS_CHOICES, normalize_choice


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("8", "CHR008"),
        (" 12 ", "CHR012"),
        ("chr001", "CHR001"),
        ("CHR 045", "CHR045"),
        ("1234", "CHR1234"),
        ("", None),
        ("   ", None),
        (None, None),
    ],
)
def test_normalize_device_id(raw, expected):
    assert normalize_device_id(raw) == expected


def test_format_and_parse_device_number():
    assert format_device_id(7) == "CHR007"
    assert format_device_id(7, prefix="lab") == "LAB007"
    assert device_id_number("CHR120") == 120
    assert device_id_number("LAB001") is None
    assert device_id_number("CHRXYZ") is None


def test_validate_email_checks_format_then_domain():
    assert validate_email("", "student") == (False, "Email is required")
    assert validate_email("not-an-email", "student") == (False, "Invalid email format")

    wrong = validate_email("ana@gmail.com", "teacher")
    assert not wrong.valid
    assert "@sj.pro.br" in wrong.message

    assert validate_email("Ana@SJ.G12.BR", "student").valid
    assert validate_email("maria@sj.pro.br", "teacher").valid
    assert validate_email("joao@colegiosaojudas.com.br", "staff").valid


def test_user_type_from_email():
    assert user_type_from_email("ana@sj.g12.br") == "student"
    assert user_type_from_email(" MARIA@sj.pro.br ") == "teacher"
    assert user_type_from_email("joao@colegiosaojudas.com.br") == "staff"
    assert user_type_from_email("someone@example.com") is None
    assert user_type_from_email(None) is None


def test_normalize_choice_rejects_unknown_values():
    assert normalize_choice(None, DEVICE_STATUS_CHOICES, "available") == "available"
    assert normalize_choice(" Fixed ", DEVICE_STATUS_CHOICES, "available") == "fixed"
    with pytest.raises(ValueError):
        normalize_choice("broken", DEVICE_STATUS_CHOICES, "available")
