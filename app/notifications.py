import json
from typing import Dict, List

NOTIFICATION_TYPE_BOUNCE = "Bounce"
NOTIFICATION_TYPE_COMPLAINT = "Complaint"
BOUNCE_TYPE_PERMANENT = "Permanent"


def _recipients(entries: List[Dict]) -> List[str]:
    return [entry.get("emailAddress", "unknown") for entry in entries or []]


def handle_bounce(notification: Dict) -> None:
    bounce = notification.get("bounce")
    if not bounce:
        return
    message_id = notification.get("mail", {}).get("messageId")
    bounce_type = bounce.get("bounceType")
    recipients = _recipients(bounce.get("bouncedRecipients"))
    print(
        f"SES bounce for message {message_id}: type {bounce_type} "
        f"subtype {bounce.get('bounceSubType')} recipients {recipients}"
    )
    if bounce_type == BOUNCE_TYPE_PERMANENT:
        # TODO(P1, reliability): Suppress these in RECIPIENT_EMAIL once we have more than a handful of recipients.
        print(f"WARNING: permanent bounce for recipients {recipients}")


def handle_complaint(notification: Dict) -> None:
    complaint = notification.get("complaint")
    if not complaint:
        return
    message_id = notification.get("mail", {}).get("messageId")
    recipients = _recipients(complaint.get("complainedRecipients"))
    print(
        f"SES complaint for message {message_id}: "
        f"feedback type {complaint.get('complaintFeedbackType')}"
    )
    print(f"WARNING: complaint received from recipients {recipients}")


def handle_sns_event(event: Dict) -> int:
    """Logs SES bounce and complaint notifications delivered through SNS, returns how many were handled."""
    handled = 0
    for record in event.get("Records", []):
        notification = json.loads(record["Sns"]["Message"])
        notification_type = notification.get("notificationType")
        print(f"Processing SES notification {notification_type}")
        if notification_type == NOTIFICATION_TYPE_BOUNCE:
            handle_bounce(notification)
        elif notification_type == NOTIFICATION_TYPE_COMPLAINT:
            handle_complaint(notification)
        else:
            print(f"INFO: ignoring SES notification of type {notification_type}")
            continue
        handled += 1
    return handled


def lambda_handler(event, context):
    handled = handle_sns_event(event)
    return {
        "statusCode": 200,
        "body": json.dumps({"message": f"processed {handled} SES notifications"}),
    }
