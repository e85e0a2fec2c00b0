from peewee import SQL, DateTimeField, IntegerField, Model, TextField

from database.client import database_proxy


class BaseModel(Model):
    class Meta:
        database = database_proxy


class BaseSubmission(BaseModel):
    completed_at = DateTimeField(null=True)
    created_at = DateTimeField()
    delivery_reference = TextField(null=True)
    enhanced_content = TextField(null=True)
    error_message = TextField(null=True)
    id = TextField(primary_key=True)
    job_reference = TextField(null=True)
    retry_count = IntegerField(constraints=[SQL("DEFAULT 0")])
    # Exactly one submission per uploaded audio object.
    source_key = TextField(unique=True)
    status = TextField(constraints=[SQL("DEFAULT 'uploaded'")])
    transcript = TextField(null=True)
    updated_at = DateTimeField()

    class Meta:
        table_name = "submission"
