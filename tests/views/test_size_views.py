from bikehire.config import api_root


class TestSizesView:

    async def test_get_sizes(self, client):
        """Assert that the default size chart is served when the store has none."""
        response = await client.get(f"{api_root}/sizes")
        response_data = await response.json()

        assert response.status == 200
        sizes = response_data["data"]["sizes"]
        assert [size["size"] for size in sizes] == ["XS", "S", "M", "L", "XL"]
        assert sizes[0] == {"size": "XS", "min_height": 120, "max_height": 140}
