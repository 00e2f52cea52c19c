"""Rider management: registration, going online/offline and location pings."""

from protean import handle
from protean.fields import Boolean, Float, Identifier, String
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.rider.rider import Rider


@fulfillment.command(part_of="Rider")
class RegisterRider:
    name = String(required=True, max_length=100)
    phone = String(required=True, max_length=20)
    lat = Float()
    lng = Float()


@fulfillment.command(part_of="Rider")
class SetRiderOnline:
    rider_id = Identifier(required=True)
    is_online = Boolean(required=True)


@fulfillment.command(part_of="Rider")
class UpdateRiderLocation:
    rider_id = Identifier(required=True)
    lat = Float(required=True)
    lng = Float(required=True)


@fulfillment.command_handler(part_of=Rider)
class RiderManagementHandler:
    @handle(RegisterRider)
    def register_rider(self, command):
        location = None
        if command.lat is not None and command.lng is not None:
            location = {"lat": command.lat, "lng": command.lng}
        rider = Rider.register(command.name, command.phone, location=location)
        current_domain.repository_for(Rider).add(rider)
        return str(rider.id)

    @handle(SetRiderOnline)
    def set_rider_online(self, command):
        repo = current_domain.repository_for(Rider)
        rider = repo.get(command.rider_id)
        rider.set_online(command.is_online)
        repo.add(rider)

    @handle(UpdateRiderLocation)
    def update_rider_location(self, command):
        repo = current_domain.repository_for(Rider)
        rider = repo.get(command.rider_id)
        rider.update_location(command.lat, command.lng)
        repo.add(rider)
