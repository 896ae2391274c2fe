"""BigQuery table schemas for the lead pipeline.

List-valued and nested fields (criteria, keywords, per-criterion scores,
job results) are stored as JSON strings so they can be written with
parameterized DML.
"""

from google.cloud.bigquery import SchemaField

CAMPAIGNS_SCHEMA = [
    SchemaField("campaign_id", "STRING", mode="REQUIRED"),
    SchemaField("name", "STRING", mode="REQUIRED"),
    SchemaField("scoring_model_id", "STRING"),
    SchemaField("industry", "STRING"),
]

SCORING_MODELS_SCHEMA = [
    SchemaField("model_id", "STRING", mode="REQUIRED"),
    SchemaField("name", "STRING", mode="REQUIRED"),
    SchemaField("industry", "STRING"),
    SchemaField("criteria_json", "STRING", mode="REQUIRED"),
    SchemaField("is_active", "BOOLEAN"),
    SchemaField("qualification_threshold", "INTEGER"),
]

LEADS_SCHEMA = [
    SchemaField("lead_id", "STRING", mode="REQUIRED"),
    SchemaField("campaign_id", "STRING", mode="REQUIRED"),
    SchemaField("url", "STRING", mode="REQUIRED"),
    SchemaField("domain", "STRING", mode="REQUIRED"),
    SchemaField("company_name", "STRING"),
    SchemaField("industry", "STRING"),
    SchemaField("status", "STRING", mode="REQUIRED"),
    SchemaField("score", "INTEGER"),
    SchemaField("created_at", "TIMESTAMP", mode="REQUIRED"),
    SchemaField("last_scored_at", "TIMESTAMP"),
]

LEAD_ENRICHMENTS_SCHEMA = [
    SchemaField("lead_id", "STRING", mode="REQUIRED"),
    SchemaField("industry", "STRING"),
    SchemaField("company_name", "STRING"),
    SchemaField("scraped_content", "STRING"),
    SchemaField("page_title", "STRING"),
    SchemaField("page_description", "STRING"),
    SchemaField("page_keywords_json", "STRING"),
    SchemaField("page_language", "STRING"),
    SchemaField("last_modified", "STRING"),
    SchemaField("services_json", "STRING"),
    SchemaField("technologies_json", "STRING"),
    SchemaField("certifications_json", "STRING"),
    SchemaField("contact_email", "STRING"),
    SchemaField("contact_phone", "STRING"),
    SchemaField("contact_address", "STRING"),
    SchemaField("processing_time_ms", "INTEGER"),
    SchemaField("source", "STRING"),
    SchemaField("created_at", "TIMESTAMP", mode="REQUIRED"),
]

SCORING_RESULTS_SCHEMA = [
    SchemaField("lead_id", "STRING", mode="REQUIRED"),
    SchemaField("scoring_model_id", "STRING"),
    SchemaField("total_score", "INTEGER", mode="REQUIRED"),
    SchemaField("confidence", "INTEGER", mode="REQUIRED"),
    SchemaField("criteria_scores_json", "STRING", mode="REQUIRED"),
    SchemaField("created_at", "TIMESTAMP", mode="REQUIRED"),
]

PIPELINE_JOBS_SCHEMA = [
    SchemaField("job_id", "STRING", mode="REQUIRED"),
    SchemaField("campaign_id", "STRING", mode="REQUIRED"),
    SchemaField("status", "STRING", mode="REQUIRED"),
    SchemaField("job_json", "STRING", mode="REQUIRED"),
    SchemaField("updated_at", "TIMESTAMP", mode="REQUIRED"),
]

SCRAPE_AUDIT_LOG_SCHEMA = [
    SchemaField("url", "STRING", mode="REQUIRED"),
    SchemaField("success", "BOOLEAN", mode="REQUIRED"),
    SchemaField("processing_time_ms", "INTEGER"),
    SchemaField("error", "STRING"),
    SchemaField("created_at", "TIMESTAMP", mode="REQUIRED"),
]

# Map table names to schemas for easy iteration
TABLE_SCHEMAS = {
    "campaigns": CAMPAIGNS_SCHEMA,
    "scoring_models": SCORING_MODELS_SCHEMA,
    "leads": LEADS_SCHEMA,
    "lead_enrichments": LEAD_ENRICHMENTS_SCHEMA,
    "scoring_results": SCORING_RESULTS_SCHEMA,
    "pipeline_jobs": PIPELINE_JOBS_SCHEMA,
    "scrape_audit_log": SCRAPE_AUDIT_LOG_SCHEMA,
}
