from enum import Enum


class ErrorCode(str, Enum):
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    ATTENDANCE_NOT_FOUND = "ATTENDANCE_NOT_FOUND"
    NOT_ATTENDING = "NOT_ATTENDING"

    PARTIAL_TRAVEL_DETAILS = "PARTIAL_TRAVEL_DETAILS"
    AIRPORT_REQUIRED = "AIRPORT_REQUIRED"
    AIRPORT_TOO_LONG = "AIRPORT_TOO_LONG"
    INVALID_TIMEZONE = "INVALID_TIMEZONE"
    NONEXISTENT_LOCAL_TIME = "NONEXISTENT_LOCAL_TIME"
    TRAVEL_WITHOUT_ATTENDANCE = "TRAVEL_WITHOUT_ATTENDANCE"
    RIDE_REQUEST_TO_SELF = "RIDE_REQUEST_TO_SELF"

    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    MATCH_QUERY_FAILED = "MATCH_QUERY_FAILED"
    ENRICHMENT_FAILED = "ENRICHMENT_FAILED"
    REQUEST_SEND_FAILED = "REQUEST_SEND_FAILED"
