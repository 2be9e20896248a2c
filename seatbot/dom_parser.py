import re
from bs4 import BeautifulSoup

_WS = re.compile(r'\s+')


def _clean(text: str) -> str:
    return _WS.sub(' ', text).strip()


def extract_date_labels(html: str) -> list[str]:
    """Labels of the date buttons (li.item_date) the performance page shows."""
    soup = BeautifulSoup(html, 'html.parser')
    labels = []
    for li in soup.select('li.item_date'):
        text = _clean(li.get_text(' '))
        if text:
            labels.append(text)
    return labels


def extract_zone_labels(html: str) -> list[str]:
    """Zone names listed in the onestop frame (.list_area li)."""
    soup = BeautifulSoup(html, 'html.parser')
    return [t for t in (_clean(li.get_text(' ')) for li in soup.select('.list_area li')) if t]


def count_collapsed_groups(html: str, expanded_class: str = 'expanded') -> int:
    """How many zone group header rows (tr id="gd...") are still collapsed."""
    soup = BeautifulSoup(html, 'html.parser')
    rows = soup.find_all('tr', id=re.compile(r'^gd'))
    return sum(1 for tr in rows if expanded_class not in (tr.get('class') or []))
