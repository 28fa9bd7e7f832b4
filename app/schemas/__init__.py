from app.schemas.options import (
    MessageResponse,
    OptionItem,
    OptionListResponse,
    OptionPayload,
    OptionResponse,
    OptionTypeItem,
    OptionTypeListResponse,
)
