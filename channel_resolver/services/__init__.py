"""服务层"""

from .channel_service import (
    ChannelConfigService,
    ChannelEditResult,
    ResolvedCall,
    get_channel_service,
)

__all__ = ["ChannelConfigService", "ChannelEditResult", "ResolvedCall", "get_channel_service"]
