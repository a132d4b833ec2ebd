"""Tests for the paginated collection fetcher"""

import pytest
from unittest.mock import Mock

from spot_analyzer.core.exceptions import PartialFetchError
from spot_analyzer.spotify.paginator import FetchedItems, fetch_all
from tests.conftest import make_response


BASE = 'https://api.spotify.com/v1/playlists/p1/tracks'


def _pages(*item_counts):
    """Responses for consecutive pages, each linking to the next"""
    responses = []
    start = 0
    for number, count in enumerate(item_counts):
        is_last = number == len(item_counts) - 1
        responses.append(make_response(200, {
            'items': [{'n': start + i} for i in range(count)],
            'next': None if is_last else f'{BASE}?offset={start + count}',
        }))
        start += count
    return responses


class TestFetchAll:
    """Test page walking"""

    def test_collects_every_page(self):
        """Test items of all pages are returned in order"""
        executor = Mock()
        executor.execute.side_effect = _pages(100, 100, 37)

        items = fetch_all(executor, BASE, {'Authorization': 'Bearer t'})

        assert len(items) == 237
        assert [item['n'] for item in items] == list(range(237))
        assert items.error is None
        assert executor.execute.call_count == 3

    def test_follows_next_links(self):
        """Test each request goes to the previous page's next link"""
        executor = Mock()
        executor.execute.side_effect = _pages(2, 2)

        fetch_all(executor, BASE, {})

        urls = [call.args[0].url for call in executor.execute.call_args_list]
        assert urls == [BASE, f'{BASE}?offset=2']
        assert all(call.kwargs['refreshable'] for call in executor.execute.call_args_list)

    def test_shares_headers_between_pages(self):
        """Test a header replaced on one page is sent on the next"""
        headers = {'Authorization': 'Bearer old'}
        executor = Mock()
        seen = []

        def execute(request, refreshable):
            seen.append(request.headers['Authorization'])
            request.headers['Authorization'] = 'Bearer new'
            return responses.pop(0)

        responses = _pages(1, 1)
        executor.execute.side_effect = execute

        fetch_all(executor, BASE, headers)

        assert seen == ['Bearer old', 'Bearer new']

    def test_cap_stops_paging(self):
        """Test the walk stops once the cap is reached, keeping the last page whole"""
        executor = Mock()
        executor.execute.side_effect = _pages(100, 100, 100)

        items = fetch_all(executor, BASE, {}, item_cap=150)

        assert len(items) == 200
        assert executor.execute.call_count == 2

    def test_cap_larger_than_collection(self):
        """Test a cap above the collection size returns everything"""
        executor = Mock()
        executor.execute.side_effect = _pages(10)

        assert len(fetch_all(executor, BASE, {}, item_cap=50)) == 10

    def test_error_payload_keeps_earlier_pages(self):
        """Test an error mid-walk is attached, not raised"""
        executor = Mock()
        executor.execute.side_effect = _pages(100, 100)[:1] + [
            make_response(404, {'error': {'status': 404, 'message': 'Invalid playlist Id'}})
        ]

        items = fetch_all(executor, BASE, {})

        assert len(items) == 100
        assert isinstance(items.error, PartialFetchError)
        assert items.error.message == 'Invalid playlist Id'
        assert items.error.details['http_status'] == 404

    def test_error_on_first_page(self):
        """Test an error on the first page gives an empty result"""
        executor = Mock()
        executor.execute.return_value = make_response(403, {'error': {'status': 403}})

        items = fetch_all(executor, BASE, {})

        assert items == []
        assert items.error.message == 'HTTP 403'

    def test_undecodable_page(self):
        """Test a non-JSON body stops the walk"""
        executor = Mock()
        executor.execute.return_value = make_response(502, content=b'<html>Bad gateway</html>')

        items = fetch_all(executor, BASE, {})

        assert items == []
        assert items.error is not None


class TestFetchedItems:
    """Test the result container"""

    def test_is_a_list(self):
        """Test FetchedItems behaves like a list"""
        items = FetchedItems([1, 2])
        items.append(3)
        assert items == [1, 2, 3]
        assert items.error is None
