from isbncheck.ingestion.encoding import DETECT_SAMPLE_SIZE, detect_encoding


def test_bom_means_utf8_sig():
    assert detect_encoding(b"\xef\xbb\xbfISBN,price\n") == "utf-8-sig"


def test_korean_double_byte_pairs_suggest_cp949():
    assert detect_encoding("저자,가격\n".encode("cp949")) == "cp949"


def test_plain_ascii_is_utf8():
    assert detect_encoding(b"title,isbn,price,author\n") == "utf-8"


def test_empty_input_never_raises():
    assert detect_encoding(b"") == "utf-8"


def test_only_the_sample_window_is_inspected():
    head = b"a" * DETECT_SAMPLE_SIZE + "저자".encode("cp949")
    assert detect_encoding(head) == "utf-8"
