from __future__ import annotations

import pandas as pd
import pytest

from talent_core.data import build_dashboard_data


@pytest.fixture
def three_rows() -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"location": "Bengaluru", "skills": "Java,SQL", "client": "Acme"},
            {"location": "Gurugram", "skills": "Java", "client": "Acme"},
            {"location": "", "skills": "SQL", "client": "Beta"},
        ]
    )


@pytest.fixture
def candidates() -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Employee ID": "E1",
                "Candidate Name": "Asha Rao",
                "Location": "bengaluru, Karnataka",
                "skills": "React, React JS, SQL",
                "client": "Acme",
                "roleDesignation": "Developer",
                "vertical": "BFSI",
                "department type": "Engineering",
                "IT/Non IT": "IT",
                "aadhaar": "1234",
            },
            {
                "Employee ID": "E2",
                "Candidate Name": "Ravi Kumar",
                "Location": "BENGALURU-560001",
                "skills": "java; python",
                "client": "Acme",
                "roleDesignation": "Tester",
                "vertical": "Retail",
                "department type": "QA",
                "IT/Non IT": "IT",
                "aadhaar": "5678",
            },
            {
                "Employee ID": "E3",
                "Candidate Name": "Meera Shah",
                "Location": "Gurugram",
                "skills": "Java",
                "client": "Beta",
                "roleDesignation": "Developer",
                "vertical": "BFSI",
                "department type": "Engineering",
                "IT/Non IT": "Non IT",
                "aadhaar": None,
            },
            {
                "Employee ID": "E4",
                "Candidate Name": "John, \"JJ\" Doe",
                "Location": "N/A",
                "skills": None,
                "client": None,
                "roleDesignation": "nan",
                "vertical": "Retail",
                "department type": "Engineering",
                "IT/Non IT": "IT",
                "aadhaar": "9999",
            },
        ]
    )


@pytest.fixture
def data_ctx(candidates):
    return build_dashboard_data(candidates, files=["candidates.xlsx"])
