from urllib.parse import parse_qs, urlencode, urlsplit


def parse_query(url_or_query: str) -> dict[str, str]:
    # Accepts a full url as well as a bare '?a=1&b=2' query string
    query_str = urlsplit(url_or_query).query if '://' in url_or_query else url_or_query
    query_params = parse_qs(query_str.lstrip('?'))
    return {key: values[0] for key, values in query_params.items()}


def build_query(query: dict[str, object] | tuple[str, object]) -> str:
    if isinstance(query, tuple):
        key, value = query
        return f'?{key}={value}'

    # Drop unset keys so they do not show up as 'key=None'
    present = {key: value for key, value in query.items() if value is not None}
    if not present:
        return ''
    return '?' + urlencode(present)
