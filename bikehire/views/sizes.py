"""
Size Related Views
------------------

The size chart, so customers can look up which bike fits them.
"""

from bikehire.serializer import returns, JSendSchema, JSendStatus, Many
from bikehire.serializer.models import HeightRangeSchema
from bikehire.views.base import BaseView


class SizesView(BaseView):
    """
    Gets the height range of every bike size.
    """
    url = "/sizes"

    @returns(JSendSchema.of(sizes=Many(HeightRangeSchema())))
    async def get(self):
        size_map = await self.booking_manager.get_size_map()
        return {
            "status": JSendStatus.SUCCESS,
            "data": {"sizes": [
                {"size": r.size, "min_height": r.min_height, "max_height": r.max_height}
                for r in size_map.ranges
            ]}
        }
