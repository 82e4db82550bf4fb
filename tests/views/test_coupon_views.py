from bikehire.config import api_root


class TestCouponView:

    async def test_get_coupon(self, client, memory_store):
        memory_store.add_coupon("SPRING20", 20)
        response = await client.get(f"{api_root}/coupons/spring20")
        response_data = await response.json()

        assert response.status == 200
        assert response_data["data"]["coupon"] == {"code": "SPRING20", "discount": 20, "discount_type": "percent"}

    async def test_missing_coupon(self, client):
        response = await client.get(f"{api_root}/coupons/NOPE")
        response_data = await response.json()
        assert response.status == 404
        assert response_data["data"]["reason"] == "couponNotFound"

    async def test_used_coupon(self, client, memory_store):
        memory_store.add_coupon("SPRING20", 20)
        await memory_store.mark_coupon_used("SPRING20", "booking")
        response = await client.get(f"{api_root}/coupons/SPRING20")
        assert response.status == 409
