from fastapi import Header, HTTPException


def get_company_id(x_company_id: str = Header(...)) -> str:
    if not x_company_id or not x_company_id.strip():
        raise HTTPException(status_code=400, detail="X-Company-ID header is missing")
    return x_company_id.strip()


def get_user_id(x_user_id: str = Header(...)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=400, detail="X-User-ID header is missing")
    return x_user_id.strip()
