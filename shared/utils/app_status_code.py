class AppStatusCode:
    # Success
    DATA_RETRIEVED_SUCCESSFULLY = "100"
    OPERATION_SUCCESSFUL = "101"
    CREATED_SUCCESSFULLY = "102"

    # Request validation
    INVALID_INPUT = "200"
    REQUIRED_VALIDATION_ERROR = "201"

    # Data / state
    DUPLICATE_ADD_ERROR = "300"
    OPERATION_ERROR = "301"
    OPERATION_FAILED = "302"
    NOT_FOUND = "303"
    INVALID_STATE_TRANSITION = "304"
    DATA_INCONSISTENCY = "305"

    # Authorization
    UNAUTHORIZED_ACTION = "400"
    INACTIVE_RESOURCE = "401"

    # Authentication
    AUTHENTICATION_TOKEN_INVALID = "500"
    AUTHENTICATION_TOKEN_EXPIRED = "501"
    AUTHENTICATION_USER_INVALID = "502"
    AUTHENTICATION_USER_INACTIVE = "503"
    AUTHENTICATION_UNAUTHORIZED_ACCESS = "504"
