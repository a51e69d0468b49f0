import json

import pandas as pd
import pytest

from lead_enricher.ingestion.loaders import (
    UnrecognizedDocumentError,
    UnsupportedFileTypeError,
    detect_shape,
    load_leads,
    record_to_lead,
    split_region,
)
from lead_enricher.ingestion.models import ArrayShape, NestedShape


@pytest.fixture()
def sample_dataframe():
    return pd.DataFrame(
        [
            {
                "Full Name": "Ada Lovelace",
                "City": "Austin",
                "State": "TX",
                "Phone Number": "512-555-1111",
                "Zip": "01234",
                "Company": "Analytical Engines",
            },
            {
                "Full Name": "Grace Hopper",
                "City": "Arlington",
                "State": "VA",
                "Phone Number": "",
                "Zip": "",
                "Company": "US Navy",
            },
        ]
    )


def test_load_leads_from_csv_with_automatic_mapping(sample_dataframe, tmp_path):
    csv_path = tmp_path / "leads.csv"
    sample_dataframe.to_csv(csv_path, index=False)

    leads = load_leads(csv_path)

    assert len(leads) == 2
    first, second = leads
    assert first.name == "Ada Lovelace"
    assert (first.city, first.state) == ("Austin", "TX")
    assert first.phone == "512-555-1111"
    assert first.zip_code == "01234"
    assert first.metadata == {"Company": "Analytical Engines"}
    assert second.phone is None
    assert second.zip_code is None


def test_load_leads_from_excel_with_column_mapping(sample_dataframe, tmp_path):
    excel_path = tmp_path / "leads.xlsx"
    sample_dataframe.rename(columns={"Full Name": "Contact", "Phone Number": "Best Number"}).to_excel(
        excel_path, index=False
    )

    leads = load_leads(excel_path, column_mapping={"name": "Contact", "phone": "Best Number"})

    assert [lead.name for lead in leads] == ["Ada Lovelace", "Grace Hopper"]
    assert leads[0].phone == "512-555-1111"
    assert leads[0].zip_code == "01234"


def test_load_leads_from_linkedin_export_splits_geo_region(tmp_path):
    json_path = tmp_path / "leads.json"
    json_path.write_text(
        json.dumps(
            [
                {
                    "firstName": "Jane",
                    "lastName": "Doe",
                    "fullName": "Jane Doe",
                    "geoRegion": "Austin, Texas, United States",
                    "navigationUrl": "https://www.linkedin.com/in/jane-doe",
                    "title": "VP Sales",
                }
            ]
        ),
        encoding="utf-8",
    )

    (lead,) = load_leads(json_path)

    assert (lead.first_name, lead.last_name, lead.name) == ("Jane", "Doe", "Jane Doe")
    assert (lead.city, lead.state) == ("Austin", "Texas")
    assert lead.linkedin_url == "https://www.linkedin.com/in/jane-doe"
    assert lead.metadata == {"title": "VP Sales"}


@pytest.mark.parametrize(
    ("document", "expected_shape"),
    [
        ([{"name": "A"}], ArrayShape()),
        ({"processedResults": [{"name": "A"}]}, NestedShape(("processedResults",))),
        ({"rawResponse": {"response": {"data": [{"name": "A"}]}}}, NestedShape(("rawResponse", "response", "data"))),
        ({"rawResponse": {"data": {"response": {"data": []}}}}, NestedShape(("rawResponse", "data", "response", "data"))),
        ({"results": [], "data": [{"name": "A"}]}, NestedShape(("results",))),
        ({"leads": [{"name": "A"}]}, NestedShape(("leads",))),
    ],
)
def test_detect_shape(document, expected_shape):
    assert detect_shape(document) == expected_shape


def test_nested_json_documents_load(tmp_path):
    json_path = tmp_path / "export.json"
    json_path.write_text(
        json.dumps({"rawResponse": {"data": [{"name": "Jane Doe", "city": "Austin", "state": "TX"}, "noise"]}}),
        encoding="utf-8",
    )

    leads = load_leads(json_path)

    assert [lead.name for lead in leads] == ["Jane Doe"]


def test_unrecognized_json_document_is_rejected(tmp_path):
    json_path = tmp_path / "leads.json"
    json_path.write_text(json.dumps({"count": 3}), encoding="utf-8")

    with pytest.raises(UnrecognizedDocumentError):
        load_leads(json_path)


def test_unsupported_file_extension(tmp_path):
    bad_path = tmp_path / "leads.txt"
    bad_path.write_text("Jane Doe", encoding="utf-8")

    with pytest.raises(UnsupportedFileTypeError):
        load_leads(bad_path)


def test_duplicate_and_empty_rows_are_dropped(tmp_path):
    csv_path = tmp_path / "leads.csv"
    pd.DataFrame(
        [
            {"name": "Jane Doe", "email": "jane@example.com", "city": "Austin", "state": "TX"},
            {"name": "", "email": "", "city": "", "state": ""},
            {"name": "Jane Doe", "email": "jane@example.com", "city": "Dallas", "state": "TX"},
            {"name": "Jane Doe", "email": "other@example.com", "city": "Austin", "state": "TX"},
        ]
    ).to_csv(csv_path, index=False)

    leads = load_leads(csv_path)

    assert [(lead.email, lead.city) for lead in leads] == [("jane@example.com", "Austin"), ("other@example.com", "Austin")]


def test_record_to_lead_prefers_explicit_city_over_region():
    lead = record_to_lead({"Name": "Jane Doe", "City": "Round Rock", "Location": "Austin, TX"})

    assert (lead.city, lead.state) == ("Round Rock", "TX")


def test_split_region():
    assert split_region("Denver, Colorado, United States") == ("Denver", "Colorado")
    assert split_region("Greater Denver Area") == (None, None)
    assert split_region(None) == (None, None)
