import json

from src.cv.models import CvData, ExperienceItem
from src.importers.linkedin import (
    is_linkedin_profile_url,
    map_linkedin_to_cv_data,
    parse_linkedin_export,
)

EXPORT = {
    "Profile": [
        {
            "FirstName": "Laila",
            "LastName": "Mahmoud",
            "Headline": "Product Manager",
            "Summary": "Ships fintech products.",
            "Location": "Cairo, Egypt",
            "EmailAddress": "laila@example.com",
        }
    ],
    "Positions": [
        {
            "CompanyName": "Paymob",
            "Title": "Senior PM",
            "StartDate": {"year": 2021, "month": 4},
            "Description": "Led checkout squad",
        },
        {"companyName": "Swvl", "title": "PM", "startDate": "2018-2", "endDate": "2021"},
    ],
    "Education": [
        {
            "SchoolName": "Cairo University",
            "DegreeName": "BSc",
            "FieldOfStudy": "Computer Science",
            "StartDate": {"year": 2010, "month": 9},
            "EndDate": {"year": 2014, "month": 6},
        }
    ],
    "Skills": [{"Name": "Roadmapping"}, {"name": "SQL"}, {"Name": ""}],
    "Languages": [{"Name": "Arabic", "Proficiency": "Native"}, {"Name": "English"}],
    "Certifications": [{"Name": "PMP", "Authority": "PMI"}],
}


def test_profile_url_validation():
    assert is_linkedin_profile_url("https://www.linkedin.com/in/laila-mahmoud")
    assert is_linkedin_profile_url("http://linkedin.com/in/laila/")
    assert not is_linkedin_profile_url("https://linkedin.com/company/paymob")
    assert not is_linkedin_profile_url("")


def test_parse_export_reads_both_key_styles():
    data = parse_linkedin_export(EXPORT)

    assert data.full_name == "Laila Mahmoud"
    assert data.headline == "Product Manager"
    assert [p.company_name for p in data.positions] == ["Paymob", "Swvl"]
    assert data.skills == ["Roadmapping", "SQL", ""]
    assert data.languages[0].proficiency == "Native"


def test_parse_export_ignores_non_object_input():
    data = parse_linkedin_export(["not", "a", "dict"])
    assert data.full_name is None
    assert data.positions == []


def test_map_to_cv_data():
    cv = map_linkedin_to_cv_data(parse_linkedin_export(EXPORT))

    assert cv.full_name == "Laila Mahmoud"
    assert cv.title == "Product Manager"
    assert cv.contact.email == "laila@example.com"
    assert cv.contact.location == "Cairo, Egypt"

    current, previous = cv.experience
    assert (current.role, current.company, current.start_date, current.end_date) == ("Senior PM", "Paymob", "2021-04", None)
    assert (previous.start_date, previous.end_date) == ("2018-02", "2021-12")

    edu = cv.education[0]
    assert edu.degree == "BSc - Computer Science"
    assert (edu.start_date, edu.end_date) == ("2010-01", "2014-12")

    assert cv.skills == ["Roadmapping", "SQL"]
    assert cv.languages == ["Arabic (Native)", "English"]
    assert cv.certifications == ["PMP - PMI"]


def test_map_tolerates_month_names_and_junk_dates():
    export = {
        "Positions": [
            {"Title": "Dev", "StartDate": {"year": "2020", "month": "Mar"}, "EndDate": {"year": 2022, "month": "September"}},
            {"Title": "Intern", "StartDate": {"year": "2019", "month": "n/a"}, "EndDate": {"year": "soon"}},
        ]
    }

    first, second = map_linkedin_to_cv_data(parse_linkedin_export(export)).experience

    assert (first.start_date, first.end_date) == ("2020-03", "2022-09")
    assert (second.start_date, second.end_date) == ("2019-01", None)


def test_map_keeps_existing_values_for_missing_sections():
    existing = CvData(
        full_name="Old Name",
        contact={"phone": "+20 100 000 0000"},
        experience=[ExperienceItem(company="Kept Co", role="Engineer")],
        skills=["Go"],
        template_key="modern",
        cv_language="ar",
    )

    cv = map_linkedin_to_cv_data(parse_linkedin_export({"Profile": {"Headline": "Engineer"}}), existing)

    assert cv.full_name == "Old Name"
    assert cv.title == "Engineer"
    assert cv.contact.phone == "+20 100 000 0000"
    assert cv.experience[0].company == "Kept Co"
    assert cv.skills == ["Go"]
    assert cv.template_key == "modern"
    assert cv.cv_language == "ar"


# ---------------------------------------------------------------------------
# Route
# ---------------------------------------------------------------------------
def test_import_route_with_json_file(client):
    resp = client.post(
        "/api/linkedin/import",
        files={"file": ("Profile.json", json.dumps(EXPORT).encode("utf-8"), "application/json")},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["source"] == "json_file"
    assert body["data"]["fullName"] == "Laila Mahmoud"
    assert body["data"]["experience"][0]["startDate"] == "2021-04"


def test_import_route_rejects_bad_json(client):
    resp = client.post("/api/linkedin/import", files={"file": ("Profile.json", b"{oops", "application/json")})
    assert resp.status_code == 400


def test_import_route_url_points_to_export_flow(client):
    resp = client.post("/api/linkedin/import", data={"url": "https://www.linkedin.com/in/laila-mahmoud"})

    assert resp.status_code == 501
    assert len(resp.json()["fallback"]["steps"]) == 6


def test_import_route_invalid_url_or_nothing(client):
    assert client.post("/api/linkedin/import", data={"url": "https://example.com/laila"}).status_code == 400
    assert client.post("/api/linkedin/import", data={}).status_code == 400
