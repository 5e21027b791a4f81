from eleague.extensions import ma
from eleague.models.social import SocialPost
from marshmallow import Schema, fields, validate


class SocialPostSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = SocialPost
        include_fk = True


class CreateSocialPostSchema(Schema):
    title = fields.String(required=True, validate=validate.Length(min=1, max=200))
    image_url = fields.String(required=True, validate=validate.Length(min=1, max=500))
    post_url = fields.Url(required=True, validate=validate.Length(max=500))
    active = fields.Boolean(load_default=True)


class UpdateSocialPostSchema(Schema):
    title = fields.String(validate=validate.Length(min=1, max=200))
    image_url = fields.String(validate=validate.Length(min=1, max=500))
    post_url = fields.Url(validate=validate.Length(max=500))
    active = fields.Boolean()
