# -*- coding: utf-8 -*-
import os
import tempfile
from pathlib import Path

import pdfplumber
import requests

from tracker.errors import ExtractionError

TEXT_SUFFIXES = {".txt", ".md", ".text"}


def _is_url(path_or_url: str) -> bool:
    return path_or_url.startswith('http://') or path_or_url.startswith('https://')


def _download(url: str) -> requests.Response:
    response = requests.get(url, timeout=30)
    response.raise_for_status()
    return response


def _load_pdf_path(path_or_url: str) -> str:
    """
    Loads a PDF from a local path or a URL and returns the local file path.
    A downloaded PDF lands in a temporary file the caller must remove.
    :param path_or_url: A local file path or a URL to a PDF file.
    :return: The local file path to the PDF.
    """
    if _is_url(path_or_url):
        response = _download(path_or_url)
        with tempfile.NamedTemporaryFile(delete=False, suffix=".pdf") as tmp_file:
            tmp_file.write(response.content)
            return tmp_file.name
    path = Path(path_or_url)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    return str(path)


def extract_pdf_pages(path_or_url: str) -> list[str]:
    """
    Extracts the text of each page of a local or remote PDF.
    :param path_or_url: A local file path or a URL to a PDF file.
    :return: One string per page that has any text.
    """
    pdf_path = _load_pdf_path(path_or_url)
    pages: list[str] = []
    try:
        with pdfplumber.open(pdf_path) as pdf:
            for page in pdf.pages:
                text = page.extract_text()
                if text:
                    pages.append(text.strip())
    finally:
        if _is_url(path_or_url):
            os.unlink(pdf_path)
    return pages


def read_syllabus_text(path_or_url: str) -> str:
    """
    Reads syllabus text from a PDF (local or URL) or a plain text file (local or URL).
    :param path_or_url: A local file path or a URL.
    :return: The text to send to the extraction call.
    :raises ExtractionError: If the file cannot be read.
    """
    suffix = Path(path_or_url.split("?")[0]).suffix.lower()
    try:
        if suffix in TEXT_SUFFIXES:
            if _is_url(path_or_url):
                return _download(path_or_url).text
            return Path(path_or_url).read_text(encoding="utf-8")
        return "\n\n".join(extract_pdf_pages(path_or_url))
    except (OSError, requests.RequestException) as e:
        raise ExtractionError(f"Could not read syllabus {path_or_url}: {e}") from e
